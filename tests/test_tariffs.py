"""
Unit tests for tariff tables and settings.

Tests numeric coercion, band selection and tier lookup fallbacks.
"""

from decimal import Decimal

import pytest

from chamber_billing.core.tariffs import (
    PageBandCosts,
    TariffTable,
    TariffTierRow,
    to_count,
    to_decimal,
)


def _row(models: int, base: int) -> TariffTierRow:
    return TariffTierRow(
        models=models,
        up_to_10=Decimal(base),
        up_to_20=Decimal(base + 60),
        up_to_50=Decimal(base + 120),
        plus_51=Decimal(base + 150)
    )


class TestCoercion:
    """Test lenient numeric coercion."""

    @pytest.mark.parametrize("raw, expected", [
        (None, Decimal("0")),
        ("", Decimal("0")),
        ("abc", Decimal("0")),
        ("1340", Decimal("1340")),
        (" 12.5 ", Decimal("12.5")),
        (180, Decimal("180")),
        (0.5, Decimal("0.5")),
        (float("nan"), Decimal("0")),
        (Decimal("Infinity"), Decimal("0")),
        ("999999999999999", Decimal("999999999999999")),
        ("1e15", Decimal("0")),
        ("1e200000000", Decimal("0")),
        ("9e999999", Decimal("0")),
        (Decimal("1E+20"), Decimal("0")),
    ])
    def test_to_decimal(self, raw, expected):
        """Absent, unreadable or out-of-range values become zero."""
        assert to_decimal(raw) == expected

    def test_to_count_truncates(self):
        """Tier model counts are whole numbers."""
        assert to_count("7") == 7
        assert to_count(None) == 0
        assert to_count("2.9") == 2

    def test_to_count_huge_exponent_is_zero(self):
        assert to_count("1e200000000") == 0


class TestPositionBands:
    """Test price column selection by position count."""

    @pytest.mark.parametrize("positions, expected", [
        (0, Decimal("1340")),
        (10, Decimal("1340")),
        (11, Decimal("1400")),
        (20, Decimal("1400")),
        (21, Decimal("1460")),
        (50, Decimal("1460")),
        (51, Decimal("1490")),
        (500, Decimal("1490")),
    ])
    def test_band_edges_are_inclusive(self, positions, expected):
        """10, 20 and 50 stay in the lower band; 51 is the top band."""
        assert _row(3, 1340).price_for_positions(positions) == expected

    @pytest.mark.parametrize("positions, expected", [
        (Decimal("10.5"), Decimal("1400")),
        (Decimal("20.01"), Decimal("1460")),
        (Decimal("50.5"), Decimal("1490")),
    ])
    def test_fractional_counts_leave_lower_band(self, positions, expected):
        """A fraction above a band edge is no longer inside that band."""
        assert _row(3, 1340).price_for_positions(positions) == expected


class TestPageBands:
    """Test certificate page-band selection."""

    costs = PageBandCosts(
        up_to_20_pages=Decimal("600"),
        from_21_to_200_pages=Decimal("950"),
        plus_201_pages=Decimal("1400")
    )

    @pytest.mark.parametrize("pages, expected", [
        (1, Decimal("600")),
        (20, Decimal("600")),
        (21, Decimal("950")),
        (200, Decimal("950")),
        (201, Decimal("1400")),
    ])
    def test_band_edges(self, pages, expected):
        assert self.costs.price_for_pages(pages) == expected

    def test_no_pages_costs_nothing(self):
        """Zero or negative pages match no band."""
        assert self.costs.price_for_pages(0) == Decimal("0")
        assert self.costs.price_for_pages(-3) == Decimal("0")

    @pytest.mark.parametrize("pages, expected", [
        (Decimal("0.5"), Decimal("600")),
        (Decimal("20.5"), Decimal("0")),
        (Decimal("200.5"), Decimal("0")),
        (Decimal("21.5"), Decimal("950")),
    ])
    def test_fractional_pages(self, pages, expected):
        """Fractions between two bands match neither."""
        assert self.costs.price_for_pages(pages) == expected


class TestTierLookup:
    """Test model-count tier lookup."""

    table = TariffTable.from_rows([_row(10, 1800), _row(1, 1200), _row(3, 1340), _row(6, 1550)])

    def test_exact_match(self):
        assert self.table.find_tier(3).models == 3

    def test_nearest_tier_below(self):
        """Without an exact row, the greatest tier below is used."""
        assert self.table.find_tier(5).models == 3
        assert self.table.find_tier(9).models == 6

    def test_above_every_tier(self):
        assert self.table.find_tier(250).models == 10

    def test_below_every_tier_uses_smallest(self):
        """Model counts under the first tier fall back to the smallest tier."""
        table = TariffTable.from_rows([_row(4, 1410), _row(2, 1270)])
        assert table.find_tier(1).models == 2
        assert table.find_tier(0).models == 2

    def test_empty_table(self):
        """Only an empty table has no tier."""
        assert TariffTable().find_tier(3) is None
        assert len(TariffTable()) == 0

    def test_lookup_is_monotonic(self):
        """More models never select a cheaper tier when prices grow with tiers."""
        prices = [self.table.find_tier(models).up_to_10 for models in range(0, 20)]
        assert prices == sorted(prices)

    def test_fractional_model_count(self):
        """A fractional count prices with the tier below it."""
        assert self.table.find_tier(Decimal("3.5")).models == 3
        assert self.table.find_tier(Decimal("3.0")).models == 3
