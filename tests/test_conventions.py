"""
Unit tests for conventions module.
"""

from datetime import date
import math
import pytest

from curvelib.conventions import (
    DayCount,
    BusinessDayConvention,
    CompoundingConvention,
    InterestRate,
    year_fraction,
    adjust_business_day,
    Conventions,
)


class TestDayCount:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_360)
        expected = 91 / 360

        assert abs(yf - expected) < 1e-10

    def test_act_365(self):
        """Test ACT/365 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_365)
        expected = 91 / 365

        assert abs(yf - expected) < 1e-10

    def test_act_act_splits_years(self):
        """ACT/ACT weighs each calendar year by its own length."""
        start = date(2023, 7, 1)
        end = date(2024, 7, 1)

        yf = year_fraction(start, end, DayCount.ACT_ACT)
        expected = 184 / 365 + 182 / 366

        assert abs(yf - expected) < 1e-12

    def test_thirty_360(self):
        """Test 30/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 3 months

        yf = year_fraction(start, end, DayCount.THIRTY_360)
        expected = 90 / 360  # 3 months * 30 days

        assert abs(yf - expected) < 1e-10

    def test_thirty_e_360_month_end(self):
        """30E/360 caps both day numbers at 30."""
        yf = year_fraction(date(2024, 1, 31), date(2024, 3, 31), DayCount.THIRTY_E_360)
        assert abs(yf - 60 / 360) < 1e-12

    def test_year_fraction_same_date(self):
        """Test year fraction for same date returns 0."""
        d = date(2024, 1, 15)
        yf = year_fraction(d, d, DayCount.ACT_360)
        assert yf == 0.0

    def test_year_fraction_is_signed(self):
        """Swapping the dates flips the sign."""
        a, b = date(2024, 1, 15), date(2024, 7, 15)
        assert year_fraction(b, a, DayCount.ACT_365) == -year_fraction(a, b, DayCount.ACT_365)

    def test_from_string(self):
        """Day counts parse from their common spellings."""
        assert DayCount.from_string("act/360") == DayCount.ACT_360
        assert DayCount.from_string("30E/360") == DayCount.THIRTY_E_360
        with pytest.raises(ValueError):
            DayCount.from_string("BUS/252")


class TestBusinessDayAdjustment:
    """Tests for business day adjustment."""

    def test_following_weekend(self):
        """Saturday rolls to Monday."""
        assert adjust_business_day(date(2024, 6, 15), BusinessDayConvention.FOLLOWING) == date(2024, 6, 17)

    def test_modified_following_month_end(self):
        """Modified following stays in the month."""
        # 2024-08-31 is a Saturday
        adjusted = adjust_business_day(date(2024, 8, 31), BusinessDayConvention.MODIFIED_FOLLOWING)
        assert adjusted == date(2024, 8, 30)

    def test_preceding(self):
        assert adjust_business_day(date(2024, 6, 16), BusinessDayConvention.PRECEDING) == date(2024, 6, 14)

    def test_unadjusted(self):
        d = date(2024, 6, 15)
        assert adjust_business_day(d, BusinessDayConvention.UNADJUSTED) == d

    def test_holiday(self):
        """Supplied holidays are skipped."""
        holidays = {date(2024, 6, 17)}
        assert adjust_business_day(date(2024, 6, 15), BusinessDayConvention.FOLLOWING, holidays) == date(2024, 6, 18)


class TestInterestRate:
    """Tests for InterestRate conversions."""

    def test_simple_compound_factor(self):
        rate = InterestRate(0.05, DayCount.ACT_360, CompoundingConvention.SIMPLE)
        assert abs(rate.compound_factor(0.5) - 1.025) < 1e-15

    def test_continuous_discount_factor(self):
        rate = InterestRate(0.05, DayCount.ACT_365, CompoundingConvention.CONTINUOUS)
        assert abs(rate.discount_factor(2.0) - math.exp(-0.1)) < 1e-15

    def test_annual_compounding(self):
        rate = InterestRate(0.04, DayCount.ACT_365, CompoundingConvention.ANNUAL)
        assert abs(rate.compound_factor(3.0) - 1.04 ** 3) < 1e-14

    def test_implied_rate_roundtrip(self):
        """Implied rate reproduces the compound factor."""
        compound = 1.0734
        for compounding in CompoundingConvention:
            rate = InterestRate.implied_rate(compound, DayCount.ACT_365, compounding, 1.7)
            assert abs(rate.compound_factor(1.7) - compound) < 1e-12

    def test_equivalent_rate(self):
        """Semi-annual to continuous conversion."""
        semi = InterestRate(0.06, DayCount.ACT_365, CompoundingConvention.SEMI_ANNUAL)
        cont = semi.equivalent_rate(DayCount.ACT_365, CompoundingConvention.CONTINUOUS, 1.0)
        assert abs(cont.rate - 2 * math.log(1.03)) < 1e-12
        assert cont.compounding == CompoundingConvention.CONTINUOUS

    def test_implied_rate_requires_positive_time(self):
        with pytest.raises(ValueError):
            InterestRate.implied_rate(1.01, DayCount.ACT_365, CompoundingConvention.SIMPLE, 0.0)

    def test_compound_factor_between_dates(self):
        rate = InterestRate(0.05, DayCount.ACT_360, CompoundingConvention.SIMPLE)
        factor = rate.compound_factor_between(date(2024, 1, 17), date(2024, 7, 17))
        assert abs(factor - (1.0 + 0.05 * 182 / 360)) < 1e-15

    def test_negative_time_rejected(self):
        rate = InterestRate(0.05, DayCount.ACT_365)
        with pytest.raises(ValueError):
            rate.compound_factor(-1.0)


class TestConventions:
    """Tests for convention presets."""

    def test_euribor_preset(self):
        """Test Euribor money market conventions."""
        conv = Conventions.euribor()
        assert conv.day_count == DayCount.ACT_360
        assert conv.business_day == BusinessDayConvention.MODIFIED_FOLLOWING
        assert conv.settlement_days == 2
        assert conv.end_of_month

    def test_eur_swap_fixed_preset(self):
        """Test EUR swap fixed leg conventions."""
        conv = Conventions.eur_swap_fixed()
        assert conv.day_count == DayCount.THIRTY_E_360
        assert conv.business_day == BusinessDayConvention.UNADJUSTED
        assert conv.payment_frequency == 1

    def test_bond_preset(self):
        """Test bond conventions."""
        conv = Conventions.bond()
        assert conv.day_count == DayCount.ACT_ACT
        assert conv.settlement_days == 3
