"""
Data models for storage layer.

Maps case records to rows of the ``case_record`` table. Billing
attributes are kept as a JSON document so each tariff branch stores only
its own fields; computed amounts are never stored.
"""

import json
from typing import Any, Dict, Sequence, Tuple

from chamber_billing.core.records import (
    CaseRecord,
    Domain,
    billing_to_dict,
    record_from_dict,
)

CASE_RECORD_COLUMNS = (
    "domain",
    "id",
    "registration_number",
    "expert",
    "status",
    "start_date",
    "end_date",
    "company_name",
    "comment",
    "act_number",
    "certificate_form",
    "billing",
)


def record_to_row(record: CaseRecord, domain: Domain) -> Tuple[Any, ...]:
    """Convert a record to a row tuple in ``CASE_RECORD_COLUMNS`` order."""
    return (
        domain.value,
        record.id,
        record.registration_number,
        record.expert,
        record.status.value,
        record.start_date,
        record.end_date,
        record.company_name,
        record.comment,
        record.act_number,
        record.certificate_form,
        json.dumps(billing_to_dict(record.billing), ensure_ascii=False),
    )


def row_to_record(row: Sequence[Any]) -> CaseRecord:
    """Rebuild a record from a row in ``CASE_RECORD_COLUMNS`` order."""
    values: Dict[str, Any] = dict(zip(CASE_RECORD_COLUMNS, row))
    billing = json.loads(values.pop("billing") or "{}")
    domain = values.pop("domain")
    values.update(billing)
    return record_from_dict(values, domain)
