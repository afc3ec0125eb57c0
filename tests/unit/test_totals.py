"""Tests for tax and total calculation."""
from decimal import Decimal

import pytest

from app.services.totals import (
    ON_TAX_NOTE,
    QC_TAX_NOTE,
    compute_totals,
    round_whole,
    tax_for_region,
    to_cents,
)


class TestTaxForRegion:

    @pytest.mark.parametrize("region", [
        "Montreal",
        "Montreal (Trois-Rivières Region)",
        "Quebec City",
        "somewhere in QUEBEC",
    ])
    def test_quebec_regions(self, region):
        assert tax_for_region(region) == (Decimal("0.14975"), QC_TAX_NOTE)

    @pytest.mark.parametrize("region", ["Toronto (Oshawa Region)", "Hamilton", "", None])
    def test_everything_else_is_ontario(self, region):
        assert tax_for_region(region) == (Decimal("0.13"), ON_TAX_NOTE)


class TestComputeTotals:

    def test_montreal(self):
        totals = compute_totals(285, "Montreal")
        assert totals.tax_rate == Decimal("0.14975")
        assert totals.tax == Decimal("42.68")
        assert totals.total == Decimal("327.68")
        assert totals.tax_note == "QC (GST+QST)"
        assert totals.currency == "CAD"

    def test_oshawa(self):
        totals = compute_totals(385, "Toronto (Oshawa Region)")
        assert totals.tax_rate == Decimal("0.13")
        assert totals.tax == Decimal("50.05")
        assert totals.total == Decimal("435.05")
        assert totals.tax_note == "ON (HST)"

    def test_repeated_calls_agree(self):
        assert compute_totals(435, "Quebec City") == compute_totals(435, "Quebec City")

    def test_half_cent_rounds_up(self):
        # 0.5 * 0.13 = 0.065
        assert compute_totals(Decimal("0.5"), "Toronto").tax == Decimal("0.07")

    @pytest.mark.parametrize("subtotal", [-10, float("nan"), float("inf"), "abc", None, True])
    def test_bad_subtotals_clamp_to_zero(self, subtotal):
        totals = compute_totals(subtotal, "Montreal")
        assert totals.subtotal == Decimal("0")
        assert totals.tax == Decimal("0.00")
        assert totals.total == Decimal("0.00")


class TestRounding:

    def test_round_whole_half_up(self):
        assert round_whole(2.5) == 3
        assert round_whole(250.49) == 250

    def test_to_cents(self):
        assert to_cents(Decimal("42.68")) == 4268
        assert to_cents(Decimal("285")) == 28500
