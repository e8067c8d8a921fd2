"""
Tariff tables and general settings.

Holds the price configuration consumed by the cost engine: the
model-count tariff table for conclusions and the per-domain general
settings with percentage multipliers and flat per-unit costs.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Largest magnitude read from records or settings: below 10**15
MAX_ADJUSTED_EXPONENT = 14


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored numeric value to ``Decimal``.

    Settings screens and legacy JSON keep numbers as ints, floats or
    strings. Anything absent, unparseable, non-finite or of absurd
    magnitude (``1e200000000``) is priced as zero, never reported as an
    error, so later arithmetic stays within the decimal context.

    Args:
        value: Raw value from configuration or a record

    Returns:
        Finite Decimal, ``Decimal("0")`` when the value cannot be read
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite() or result.adjusted() > MAX_ADJUSTED_EXPONENT:
        return ZERO
    return result


def to_count(value: Any) -> int:
    """Coerce a stored whole number (tier model count) to ``int``.

    Fractions are truncated toward zero.
    """
    return int(to_decimal(value))


@dataclass(frozen=True)
class TariffTierRow:
    """Conclusion prices for one model-count tier.

    Four price points, one per position-count band.
    """
    models: int
    up_to_10: Decimal = ZERO  # positions <= 10
    up_to_20: Decimal = ZERO  # 11..20
    up_to_50: Decimal = ZERO  # 21..50
    plus_51: Decimal = ZERO  # >= 51

    def price_for_positions(self, positions: Decimal) -> Decimal:
        """Select the price column for a position count.

        Band edges are inclusive: 10, 20 and 50 stay in the lower band.
        """
        if positions <= 10:
            return self.up_to_10
        if positions <= 20:
            return self.up_to_20
        if positions <= 50:
            return self.up_to_50
        return self.plus_51


@dataclass(frozen=True)
class TariffTable:
    """Model-count tariff table for conclusions.

    Model keys need not be contiguous or sorted.
    """
    rows: Tuple[TariffTierRow, ...] = ()

    @classmethod
    def from_rows(cls, rows: Iterable[TariffTierRow]) -> "TariffTable":
        return cls(tuple(rows))

    def __len__(self) -> int:
        return len(self.rows)

    def find_tier(self, models: Decimal) -> Optional[TariffTierRow]:
        """Find the tier that prices a given model count.

        Lookup order:
        1. The row whose model count equals ``models``
        2. The row with the greatest model count below ``models``
        3. The row with the smallest model count, when ``models`` is
           below every defined tier

        Args:
            models: Model count of the case

        Returns:
            Matching row, or None only when the table is empty
        """
        if not self.rows:
            logger.debug("Tariff table is empty, no tier for %s models", models)
            return None

        for row in self.rows:
            if row.models == models:
                return row

        below = [row for row in self.rows if row.models <= models]
        if below:
            tier = max(below, key=lambda row: row.models)
        else:
            tier = min(self.rows, key=lambda row: row.models)
        logger.debug("No exact tier for %s models, using tier %s", models, tier.models)
        return tier


@dataclass(frozen=True)
class ConclusionSettings:
    """General settings for the conclusions domain.

    Percentages are whole numbers (30 means 30%).
    """
    urgency: Decimal = ZERO
    code_cost: Decimal = ZERO
    discount: Decimal = ZERO
    complexity: Decimal = ZERO
    contractual_page_cost: Decimal = ZERO


@dataclass(frozen=True)
class PageBandCosts:
    """Certificate prices for one production type."""
    up_to_20_pages: Decimal = ZERO
    from_21_to_200_pages: Decimal = ZERO
    plus_201_pages: Decimal = ZERO
    additional_position: Decimal = ZERO

    def price_for_pages(self, pages: Decimal) -> Decimal:
        """Main certificate price for a page count.

        A page count of zero or less matches no band and costs nothing,
        and so does a fractional count strictly between 20 and 21.
        """
        if 0 < pages <= 20:
            return self.up_to_20_pages
        if 21 <= pages <= 200:
            return self.from_21_to_200_pages
        if pages >= 201:
            return self.plus_201_pages
        return ZERO


@dataclass(frozen=True)
class CertificateSettings:
    """General settings for the certificates domain."""
    urgency: Decimal = ZERO
    additional_page_cost: Decimal = ZERO
    replacement_cost: Decimal = ZERO
    reissuance_cost: Decimal = ZERO
    duplicate_cost: Decimal = ZERO
    fully_produced: PageBandCosts = field(default_factory=PageBandCosts)
    sufficient_processing: PageBandCosts = field(default_factory=PageBandCosts)
