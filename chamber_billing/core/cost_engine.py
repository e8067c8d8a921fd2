"""
Cost calculation for conclusions and certificates.

Converts a case's billing attributes into monetary amounts using the
current tariff table and general settings. Amounts are always recomputed
from source data; nothing here is cached or stored, so a tariff edit is
reflected in every total the next time it is computed.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from .records import (
    CERTIFICATE_VARIANTS,
    CONCLUSION_VARIANTS,
    Billing,
    CaseRecord,
    CertificateServiceType,
    ContractualConclusion,
    CustomCostConclusion,
    Domain,
    FlatFeeCertificate,
    ProductionType,
    QuickRegistration,
    StandardConclusion,
)
from .tariffs import (
    HUNDRED,
    ZERO,
    CertificateSettings,
    ConclusionSettings,
    PageBandCosts,
    TariffTable,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")

Settings = Union[ConclusionSettings, CertificateSettings]


@dataclass(frozen=True)
class CostResult:
    """Totals and itemized components of one case.

    The itemized fields exist for order documents; only the two sums are
    meaningful for tables and reports. Conclusion components stay zero
    for certificates and the other way round.
    """
    sum_without_discount: Decimal = ZERO
    sum_with_discount: Decimal = ZERO

    # Conclusions
    model_cost: Decimal = ZERO
    code_cost: Decimal = ZERO
    complexity_cost: Decimal = ZERO
    urgency_cost: Decimal = ZERO
    page_cost: Decimal = ZERO
    discount_multiplier: Decimal = ONE

    # Certificates
    main_cert_cost: Decimal = ZERO
    positions_cost: Decimal = ZERO
    additional_pages_cost: Decimal = ZERO
    urgent_main_cert_cost: Decimal = ZERO
    urgent_positions_cost: Decimal = ZERO
    urgent_additional_pages_cost: Decimal = ZERO
    urgency_multiplier: Decimal = ONE

    @classmethod
    def zero(cls) -> "CostResult":
        """Result for a case that cannot be priced yet."""
        return cls()


def compute_cost(
    case: Union[CaseRecord, Billing],
    tariff_table: Optional[TariffTable],
    settings: Settings,
    domain: Union[str, Domain],
) -> CostResult:
    """Compute the cost of a case.

    Pure function: no I/O and no mutation of its inputs. Missing numbers
    were already normalized to zero, and an empty tariff table yields a
    zero result, so data problems never raise.

    Args:
        case: A CaseRecord or its billing variant
        tariff_table: Model-count tariff table (used for conclusions only)
        settings: General settings of the same domain
        domain: ``conclusions`` or ``certificates``

    Returns:
        CostResult with totals and itemized components

    Raises:
        ValueError: If the domain is unknown, or the case or settings
            belong to the other domain
    """
    domain = Domain.parse(domain)
    billing = case.billing if isinstance(case, CaseRecord) else case

    if domain is Domain.CERTIFICATES:
        _check_inputs(billing, settings, CERTIFICATE_VARIANTS, CertificateSettings, domain)
    else:
        _check_inputs(billing, settings, CONCLUSION_VARIANTS, ConclusionSettings, domain)

    if isinstance(billing, QuickRegistration):
        return CostResult.zero()

    if domain is Domain.CERTIFICATES:
        return _certificate_cost(billing, settings)
    return _conclusion_cost(billing, tariff_table or TariffTable(), settings)


def _check_inputs(billing, settings, variants, settings_cls, domain: Domain) -> None:
    if not isinstance(billing, (QuickRegistration,) + variants):
        raise ValueError(
            f"{type(billing).__name__} cannot be priced as {domain.value}"
        )
    if not isinstance(settings, settings_cls):
        raise ValueError(
            f"{type(settings).__name__} cannot price {domain.value}, "
            f"expected {settings_cls.__name__}"
        )


def _percent(value: Decimal) -> Decimal:
    return value / HUNDRED


def _certificate_cost(billing, settings: CertificateSettings) -> CostResult:
    urgency_multiplier = ONE + _percent(settings.urgency) if billing.urgency else ONE

    if billing.production_type is ProductionType.FULLY_PRODUCED:
        band_costs: PageBandCosts = settings.fully_produced
    else:
        band_costs = settings.sufficient_processing

    if isinstance(billing, FlatFeeCertificate):
        main_cert_cost = {
            CertificateServiceType.REPLACEMENT: settings.replacement_cost,
            CertificateServiceType.REISSUANCE: settings.reissuance_cost,
            CertificateServiceType.DUPLICATE: settings.duplicate_cost,
        }.get(billing.service_type, ZERO)
    else:
        main_cert_cost = band_costs.price_for_pages(billing.pages)

    # units of 0 bill as a single certificate
    units = billing.units or 1
    urgent_main_cert_cost = main_cert_cost * units * urgency_multiplier

    positions_cost = billing.positions * band_costs.additional_position
    urgent_positions_cost = positions_cost * urgency_multiplier

    additional_pages_cost = billing.additional_pages * settings.additional_page_cost
    urgent_additional_pages_cost = additional_pages_cost * urgency_multiplier

    total = urgent_main_cert_cost + urgent_positions_cost + urgent_additional_pages_cost

    return CostResult(
        sum_without_discount=total,
        sum_with_discount=total,
        main_cert_cost=main_cert_cost,
        positions_cost=positions_cost,
        additional_pages_cost=additional_pages_cost,
        urgent_main_cert_cost=urgent_main_cert_cost,
        urgent_positions_cost=urgent_positions_cost,
        urgent_additional_pages_cost=urgent_additional_pages_cost,
        urgency_multiplier=urgency_multiplier,
    )


def _conclusion_cost(
    billing, tariff_table: TariffTable, settings: ConclusionSettings
) -> CostResult:
    discount_multiplier = ONE - _percent(settings.discount) if billing.discount else ONE

    if isinstance(billing, CustomCostConclusion):
        return CostResult(
            sum_without_discount=billing.custom_cost,
            sum_with_discount=billing.custom_cost * discount_multiplier,
            discount_multiplier=discount_multiplier,
        )

    if isinstance(billing, ContractualConclusion):
        page_cost = billing.pages * settings.contractual_page_cost
        code_cost = billing.codes * settings.code_cost
        total = page_cost + code_cost
        return CostResult(
            sum_without_discount=total,
            sum_with_discount=total * discount_multiplier,
            code_cost=code_cost,
            page_cost=page_cost,
            discount_multiplier=discount_multiplier,
        )

    return _standard_conclusion_cost(billing, tariff_table, settings, discount_multiplier)


def _standard_conclusion_cost(
    billing: StandardConclusion,
    tariff_table: TariffTable,
    settings: ConclusionSettings,
    discount_multiplier: Decimal,
) -> CostResult:
    tier = tariff_table.find_tier(billing.models)
    if tier is None:
        logger.debug("Standard conclusion priced at zero: tariff table is empty")
        return CostResult.zero()

    model_cost = tier.price_for_positions(billing.positions)
    code_cost = billing.codes * settings.code_cost
    base_cost = model_cost + code_cost

    # Urgency compounds on top of the complexity surcharge
    running_total = base_cost
    complexity_cost = ZERO
    if billing.complexity:
        complexity_cost = base_cost * _percent(settings.complexity)
        running_total += complexity_cost

    urgency_cost = ZERO
    if billing.urgency and running_total > 0:
        urgency_cost = running_total * _percent(settings.urgency)
        running_total += urgency_cost

    return CostResult(
        sum_without_discount=running_total,
        sum_with_discount=running_total * discount_multiplier,
        model_cost=model_cost,
        code_cost=code_cost,
        complexity_cost=complexity_cost,
        urgency_cost=urgency_cost,
        discount_multiplier=discount_multiplier,
    )
