"""
Order document data.

Builds the itemized lines and totals printed on a work order. Layout is
left to the renderer; amounts here are already rounded to kopecks.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Union

from .cost_engine import CostResult, Settings, compute_cost
from .records import (
    CaseRecord,
    ContractualConclusion,
    CustomCostConclusion,
    Domain,
    QuickRegistration,
)
from .tariffs import ZERO, TariffTable

VAT_RATE = Decimal("0.20")

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round an amount to 2 decimal places, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderLine:
    """One priced line of an order."""
    label: str
    amount: Decimal
    discounted_amount: Decimal
    quantity: Optional[str] = None


@dataclass(frozen=True)
class OrderDocument:
    """Priced content of a work order for one case."""
    registration_number: str
    expert: str
    company_name: str
    lines: List[OrderLine] = field(default_factory=list)
    total_without_discount: Decimal = ZERO
    total_with_discount: Decimal = ZERO
    vat: Decimal = ZERO
    total_with_vat: Decimal = ZERO


def _line(label: str, amount: Decimal, multiplier: Decimal, quantity: Optional[str] = None) -> OrderLine:
    return OrderLine(
        label=label,
        amount=round_money(amount),
        discounted_amount=round_money(amount * multiplier),
        quantity=quantity
    )


def _conclusion_lines(record: CaseRecord, cost: CostResult) -> List[OrderLine]:
    billing = record.billing
    multiplier = cost.discount_multiplier

    if isinstance(billing, CustomCostConclusion):
        return [_line("Вартість робіт", cost.sum_without_discount, multiplier)]

    if isinstance(billing, ContractualConclusion):
        return [
            _line("Аналіз витрат сировини (договірний)", cost.page_cost, multiplier,
                  f"{billing.pages} стор"),
            _line("Підтвердження кодів згідно УКТЗЕД", cost.code_cost, multiplier,
                  f"{billing.codes} код"),
        ]

    lines = [
        _line("Аналіз витрат сировини", cost.model_cost, multiplier,
              f"{billing.models} мод / {billing.positions} поз"),
        _line("Підтвердження кодів згідно УКТЗЕД", cost.code_cost, multiplier,
              f"{billing.codes} код"),
    ]
    if cost.complexity_cost > 0:
        lines.append(_line("За модельні особливості та складності роботи",
                           cost.complexity_cost, multiplier))
    if cost.urgency_cost > 0:
        lines.append(_line("За терміновість", cost.urgency_cost, multiplier))
    return lines


def _certificate_lines(record: CaseRecord, cost: CostResult) -> List[OrderLine]:
    billing = record.billing
    tariff = "терміновий" if billing.urgency else "звичайний"
    lines = [
        _line(f"Сертифікат походження ({tariff})", cost.urgent_main_cert_cost,
              cost.discount_multiplier, f"{billing.units or 1} шт"),
    ]
    if cost.urgent_positions_cost > 0:
        lines.append(_line("Додаткові позиції", cost.urgent_positions_cost,
                           cost.discount_multiplier, f"{billing.positions} поз"))
    if cost.urgent_additional_pages_cost > 0:
        lines.append(_line("Додаткові аркуші", cost.urgent_additional_pages_cost,
                           cost.discount_multiplier, f"{billing.additional_pages} арк"))
    return lines


def build_order(
    record: CaseRecord,
    tariff_table: Optional[TariffTable],
    settings: Settings,
    domain: Union[str, Domain]
) -> OrderDocument:
    """Build the priced content of a work order.

    VAT is charged on the discounted total. Certificates have no
    discount, so for them it is the plain total.

    Args:
        record: Case to print
        tariff_table: Conclusion tariff table (ignored for certificates)
        settings: General settings of the domain
        domain: Domain of the record

    Returns:
        OrderDocument with rounded lines and totals

    Raises:
        ValueError: If the domain is unknown or does not match the inputs
    """
    domain = Domain.parse(domain)
    cost = compute_cost(record, tariff_table, settings, domain)

    if isinstance(record.billing, QuickRegistration):
        lines: List[OrderLine] = []
    elif domain is Domain.CERTIFICATES:
        lines = _certificate_lines(record, cost)
    else:
        lines = _conclusion_lines(record, cost)

    total_without_discount = round_money(cost.sum_without_discount)
    total_with_discount = round_money(cost.sum_with_discount)
    vat = round_money(cost.sum_with_discount * VAT_RATE)

    return OrderDocument(
        registration_number=record.registration_number,
        expert=record.expert,
        company_name=record.company_name,
        lines=lines,
        total_without_discount=total_without_discount,
        total_with_discount=total_with_discount,
        vat=vat,
        total_with_vat=total_with_discount + vat
    )
