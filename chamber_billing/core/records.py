"""
Case records and their billing attributes.

A case carries exactly one billing variant, chosen by its tariff branch.
Raw records (settings-screen JSON, database rows) are normalized here
once, so the cost engine only ever sees well-typed variants.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .tariffs import MAX_ADJUSTED_EXPONENT, ZERO, to_decimal

WITH_DISCOUNT = "Зі знижкою"
FULL_PRICE = "Повна"


class Domain(Enum):
    """Document domains with independent tariffs and settings."""
    CONCLUSIONS = "conclusions"
    CERTIFICATES = "certificates"

    @classmethod
    def parse(cls, value: Union[str, "Domain"]) -> "Domain":
        """Resolve a domain selector.

        Raises:
            ValueError: If the selector names no known domain
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = [domain.value for domain in cls]
            raise ValueError(f"Unknown domain: {value!r}, expected one of: {valid}")


class RecordStatus(Enum):
    COMPLETED = "Виконано"
    NOT_COMPLETED = "Не виконано"


class ConclusionType(Enum):
    STANDARD = "standard"
    CONTRACTUAL = "contractual"
    CUSTOM_COST = "custom_cost"


class CertificateServiceType(Enum):
    STANDARD = "standard"
    REPLACEMENT = "replacement"
    REISSUANCE = "reissuance"
    DUPLICATE = "duplicate"


class ProductionType(Enum):
    FULLY_PRODUCED = "fully_produced"
    SUFFICIENT_PROCESSING = "sufficient_processing"


@dataclass(frozen=True)
class QuickRegistration:
    """Placeholder case without billing data. Always priced at zero."""


@dataclass(frozen=True)
class StandardConclusion:
    """Conclusion priced from the model-count tariff table."""
    models: Decimal = ZERO
    positions: Decimal = ZERO
    codes: Decimal = ZERO
    complexity: bool = False
    urgency: bool = False
    discount: bool = False


@dataclass(frozen=True)
class ContractualConclusion:
    """Conclusion priced per page under a contract."""
    pages: Decimal = ZERO
    codes: Decimal = ZERO
    discount: bool = False


@dataclass(frozen=True)
class CustomCostConclusion:
    """Conclusion with a manually entered price."""
    custom_cost: Decimal = ZERO
    discount: bool = False


@dataclass(frozen=True)
class StandardCertificate:
    """Certificate priced by page band and production type."""
    pages: Decimal = ZERO
    units: Decimal = ZERO
    positions: Decimal = ZERO
    additional_pages: Decimal = ZERO
    production_type: ProductionType = ProductionType.SUFFICIENT_PROCESSING
    urgency: bool = False


@dataclass(frozen=True)
class FlatFeeCertificate:
    """Replacement, reissuance or duplicate of a certificate at a flat fee."""
    service_type: CertificateServiceType
    units: Decimal = ZERO
    positions: Decimal = ZERO
    additional_pages: Decimal = ZERO
    production_type: ProductionType = ProductionType.SUFFICIENT_PROCESSING
    urgency: bool = False


ConclusionBilling = Union[StandardConclusion, ContractualConclusion, CustomCostConclusion]
CertificateBilling = Union[StandardCertificate, FlatFeeCertificate]
Billing = Union[QuickRegistration, ConclusionBilling, CertificateBilling]

CONCLUSION_VARIANTS = (StandardConclusion, ContractualConclusion, CustomCostConclusion)
CERTIFICATE_VARIANTS = (StandardCertificate, FlatFeeCertificate)


@dataclass(frozen=True)
class CaseRecord:
    """A registered conclusion or certificate case.

    Experts and companies are referenced by name. Amounts are never
    stored on the record; they are recomputed from ``billing``.
    """
    registration_number: str
    expert: str
    start_date: str
    end_date: str
    billing: Billing = field(default_factory=QuickRegistration)
    id: Optional[int] = None
    status: RecordStatus = RecordStatus.NOT_COMPLETED
    company_name: str = ""
    comment: Optional[str] = None
    act_number: Optional[str] = None
    certificate_form: Optional[str] = None

    @property
    def is_quick_registration(self) -> bool:
        return isinstance(self.billing, QuickRegistration)

    @property
    def month(self) -> str:
        """Reporting month (``YYYY-MM``), taken from the end date."""
        return (self.end_date or "")[:7]


# snake_case key -> legacy camelCase key
_LEGACY_KEYS = {
    "registration_number": "registrationNumber",
    "start_date": "startDate",
    "end_date": "endDate",
    "company_name": "companyName",
    "act_number": "actNumber",
    "certificate_form": "certificateForm",
    "additional_pages": "additionalPages",
    "production_type": "productionType",
    "certificate_service_type": "certificateServiceType",
    "conclusion_type": "conclusionType",
    "custom_cost": "customCost",
    "is_quick_registration": "isQuickRegistration",
}


def _get(raw: Mapping[str, Any], key: str, default: Any = None) -> Any:
    if key in raw:
        return raw[key]
    legacy = _LEGACY_KEYS.get(key)
    if legacy is not None and legacy in raw:
        return raw[legacy]
    return default


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _enum_or_default(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except ValueError:
        return default


def _discount_selected(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.strip() == WITH_DISCOUNT


def normalize_billing(raw: Mapping[str, Any], domain: Union[str, Domain]) -> Billing:
    """Build the billing variant for a raw record.

    Quantities keep fractional values as entered; pricing compares and
    multiplies them as they are. Numeric fields that are absent,
    unreadable or out of range become zero and unknown branch selectors
    fall back to the standard branch, so this never fails on record
    content.

    Args:
        raw: Record attributes (snake_case or legacy camelCase keys)
        domain: Domain the record belongs to

    Returns:
        The billing variant for the record's active tariff branch

    Raises:
        ValueError: If the domain is not recognized
    """
    domain = Domain.parse(domain)

    if _flag(_get(raw, "is_quick_registration", False)):
        return QuickRegistration()

    if domain is Domain.CONCLUSIONS:
        discount = _discount_selected(_get(raw, "discount"))
        branch = _enum_or_default(
            ConclusionType, _get(raw, "conclusion_type"), ConclusionType.STANDARD
        )
        if branch is ConclusionType.CUSTOM_COST:
            return CustomCostConclusion(
                custom_cost=to_decimal(_get(raw, "custom_cost")),
                discount=discount,
            )
        if branch is ConclusionType.CONTRACTUAL:
            return ContractualConclusion(
                pages=to_decimal(_get(raw, "pages")),
                codes=to_decimal(_get(raw, "codes")),
                discount=discount,
            )
        return StandardConclusion(
            models=to_decimal(_get(raw, "models")),
            positions=to_decimal(_get(raw, "positions")),
            codes=to_decimal(_get(raw, "codes")),
            complexity=_flag(_get(raw, "complexity", False)),
            urgency=_flag(_get(raw, "urgency", False)),
            discount=discount,
        )

    production_type = _enum_or_default(
        ProductionType,
        _get(raw, "production_type"),
        ProductionType.SUFFICIENT_PROCESSING,
    )
    service_type = _enum_or_default(
        CertificateServiceType,
        _get(raw, "certificate_service_type"),
        CertificateServiceType.STANDARD,
    )
    common = dict(
        units=to_decimal(_get(raw, "units")),
        positions=to_decimal(_get(raw, "positions")),
        additional_pages=to_decimal(_get(raw, "additional_pages")),
        production_type=production_type,
        urgency=_flag(_get(raw, "urgency", False)),
    )
    if service_type is CertificateServiceType.STANDARD:
        return StandardCertificate(pages=to_decimal(_get(raw, "pages")), **common)
    return FlatFeeCertificate(service_type=service_type, **common)


def _record_id(value: Any) -> Optional[int]:
    """Read a record id; absent or empty means the store assigns one."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid record id: {value!r}")
    if (not number.is_finite() or number.adjusted() > MAX_ADJUSTED_EXPONENT
            or number != number.to_integral_value()):
        raise ValueError(f"Invalid record id: {value!r}")
    return int(number)


def record_from_dict(raw: Mapping[str, Any], domain: Union[str, Domain]) -> CaseRecord:
    """Build a CaseRecord from a raw mapping.

    Billing attributes are read leniently; the id is not, since it
    identifies the stored row. ``"3.0"`` is id 3.

    Raises:
        ValueError: If the domain is not recognized or the id is not a
            whole number
    """
    status = _enum_or_default(
        RecordStatus, _get(raw, "status"), RecordStatus.NOT_COMPLETED
    )
    return CaseRecord(
        id=_record_id(_get(raw, "id")),
        registration_number=str(_get(raw, "registration_number", "") or ""),
        expert=str(_get(raw, "expert", "") or ""),
        status=status,
        start_date=str(_get(raw, "start_date", "") or ""),
        end_date=str(_get(raw, "end_date", "") or ""),
        company_name=str(_get(raw, "company_name", "") or ""),
        comment=_get(raw, "comment"),
        act_number=_get(raw, "act_number"),
        certificate_form=_get(raw, "certificate_form"),
        billing=normalize_billing(raw, domain),
    )


def _number(value: Any) -> Union[int, str]:
    """JSON-safe quantity: whole numbers as ints, fractions as strings."""
    value = to_decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return str(value)


def billing_to_dict(billing: Billing) -> Dict[str, Any]:
    """Flatten a billing variant back into raw record attributes."""
    if isinstance(billing, QuickRegistration):
        return {"is_quick_registration": True}
    if isinstance(billing, StandardConclusion):
        return {
            "conclusion_type": ConclusionType.STANDARD.value,
            "models": _number(billing.models),
            "positions": _number(billing.positions),
            "codes": _number(billing.codes),
            "complexity": billing.complexity,
            "urgency": billing.urgency,
            "discount": WITH_DISCOUNT if billing.discount else FULL_PRICE,
        }
    if isinstance(billing, ContractualConclusion):
        return {
            "conclusion_type": ConclusionType.CONTRACTUAL.value,
            "pages": _number(billing.pages),
            "codes": _number(billing.codes),
            "discount": WITH_DISCOUNT if billing.discount else FULL_PRICE,
        }
    if isinstance(billing, CustomCostConclusion):
        return {
            "conclusion_type": ConclusionType.CUSTOM_COST.value,
            "custom_cost": str(billing.custom_cost),
            "discount": WITH_DISCOUNT if billing.discount else FULL_PRICE,
        }

    data = {
        "units": _number(billing.units),
        "positions": _number(billing.positions),
        "additional_pages": _number(billing.additional_pages),
        "production_type": billing.production_type.value,
        "urgency": billing.urgency,
    }
    if isinstance(billing, StandardCertificate):
        data["certificate_service_type"] = CertificateServiceType.STANDARD.value
        data["pages"] = _number(billing.pages)
    else:
        data["certificate_service_type"] = billing.service_type.value
    return data


def record_to_dict(record: CaseRecord) -> Dict[str, Any]:
    """Serialize a CaseRecord to a flat mapping accepted by record_from_dict."""
    data: Dict[str, Any] = {
        "id": record.id,
        "registration_number": record.registration_number,
        "expert": record.expert,
        "status": record.status.value,
        "start_date": record.start_date,
        "end_date": record.end_date,
        "company_name": record.company_name,
        "comment": record.comment,
        "act_number": record.act_number,
        "certificate_form": record.certificate_form,
    }
    data.update(billing_to_dict(record.billing))
    return data
