"""
Monthly performance statistics.

Aggregates case costs for a reporting period and tracks progress of the
whole office and of each expert against the monthly plan.

Every total is recomputed through the cost engine with the tariff
configuration passed in, so a changed tariff changes historical totals too.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .cost_engine import Settings, compute_cost
from .records import CaseRecord, Domain, RecordStatus
from .tariffs import HUNDRED, ZERO, TariffTable

ALL_EXPERTS = "all"
NO_REGISTRATION_NUMBER = "N/A"

_DIGITS = re.compile(r"(\d+)")


@dataclass(frozen=True)
class ExpertPlan:
    """Planned monthly amount for one expert."""
    name: str
    plan_amount: Decimal = ZERO


@dataclass(frozen=True)
class MonthlyPlan:
    """Office plan for one month."""
    total_plan: Decimal = ZERO
    expert_plans: List[ExpertPlan] = field(default_factory=list)


@dataclass(frozen=True)
class ExpertProgress:
    """Completed amount of one expert compared with the plan."""
    name: str
    completed_total: Decimal
    plan_amount: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class PeriodSummary:
    """Totals of a reporting period."""
    record_count: int
    completed_count: int
    not_completed_count: int
    total_without_discount: Decimal
    total_with_discount: Decimal
    completed_total: Decimal
    total_plan: Decimal
    plan_percentage: Decimal
    expert_progress: List[ExpertProgress] = field(default_factory=list)


def plan_percentage(done: Decimal, plan: Decimal) -> Decimal:
    """Share of a plan that is done, capped at 100.

    A plan of zero or less reports 0 rather than dividing by it.
    """
    if plan <= 0:
        return ZERO
    return min(done / plan * HUNDRED, HUNDRED)


def filter_records(
    records: Iterable[CaseRecord],
    month: str,
    expert: Optional[str] = None
) -> List[CaseRecord]:
    """Select the records of a reporting month.

    Args:
        records: Records of one domain
        month: Month as ``YYYY-MM``, matched against the end date
        expert: Expert name; None or ``"all"`` keeps every expert

    Returns:
        Matching records in their original order
    """
    return [
        record for record in records
        if record.month == month
        and (expert in (None, ALL_EXPERTS) or record.expert == expert)
    ]


def plan_for_month(monthly_plans: Mapping[str, MonthlyPlan], month: str) -> MonthlyPlan:
    return monthly_plans.get(month) or MonthlyPlan()


def list_experts(
    records: Iterable[CaseRecord],
    monthly_plans: Mapping[str, MonthlyPlan]
) -> List[str]:
    """Unique expert names from records and every plan, first seen first."""
    names: Dict[str, None] = {}
    for record in records:
        names.setdefault(record.expert, None)
    for plan in monthly_plans.values():
        for expert_plan in plan.expert_plans:
            names.setdefault(expert_plan.name, None)
    return list(names)


def last_registration_number(records: Iterable[CaseRecord]) -> str:
    """Registration number with the largest numeric part.

    The first run of digits counts, so ``Д-864`` beats ``Д-97``. Numbers
    without digits count as 0; on ties the earliest record wins.
    """
    latest: Optional[CaseRecord] = None
    latest_number = -1
    for record in records:
        match = _DIGITS.search(record.registration_number)
        number = int(match.group(1)) if match else 0
        if number > latest_number:
            latest, latest_number = record, number
    if latest is None:
        return NO_REGISTRATION_NUMBER
    return latest.registration_number


def summarize_period(
    records: Iterable[CaseRecord],
    tariff_table: Optional[TariffTable],
    settings: Settings,
    domain: Union[str, Domain],
    plan: Optional[MonthlyPlan] = None
) -> PeriodSummary:
    """Summarize the records of a period against its plan.

    Plan progress counts only completed records at their discounted
    amount, matching what the office actually bills.

    Args:
        records: Records already filtered to the period
        tariff_table: Conclusion tariff table (ignored for certificates)
        settings: General settings of the domain
        domain: Domain of the records
        plan: Monthly plan; None means an empty plan

    Returns:
        PeriodSummary with counts, totals and per-expert progress

    Raises:
        ValueError: If the domain is unknown or does not match the inputs
    """
    plan = plan or MonthlyPlan()
    records = list(records)

    total_without_discount = ZERO
    total_with_discount = ZERO
    completed_total = ZERO
    completed_by_expert: Dict[str, Decimal] = {}
    completed_count = 0

    for record in records:
        result = compute_cost(record, tariff_table, settings, domain)
        total_without_discount += result.sum_without_discount
        total_with_discount += result.sum_with_discount
        if record.status is RecordStatus.COMPLETED:
            completed_count += 1
            completed_total += result.sum_with_discount
            completed_by_expert[record.expert] = (
                completed_by_expert.get(record.expert, ZERO) + result.sum_with_discount
            )

    expert_progress = []
    for expert_plan in plan.expert_plans:
        done = completed_by_expert.get(expert_plan.name, ZERO)
        expert_progress.append(ExpertProgress(
            name=expert_plan.name,
            completed_total=done,
            plan_amount=expert_plan.plan_amount,
            percentage=plan_percentage(done, expert_plan.plan_amount)
        ))

    return PeriodSummary(
        record_count=len(records),
        completed_count=completed_count,
        not_completed_count=len(records) - completed_count,
        total_without_discount=total_without_discount,
        total_with_discount=total_with_discount,
        completed_total=completed_total,
        total_plan=plan.total_plan,
        plan_percentage=plan_percentage(completed_total, plan.total_plan),
        expert_progress=expert_progress
    )
