"""
Unit tests for piecewise yield curve bootstrapping.
"""

from datetime import date, timedelta
import math
import pytest

from curvelib.conventions import BusinessDayConvention, CompoundingConvention, DayCount, year_fraction
from curvelib.curves import (
    BackwardFlatInterpolator,
    ConvexMonotoneInterpolator,
    CubicSplineInterpolator,
    DepositRateHelper,
    Discount,
    FlatForward,
    ForwardRate,
    FuturesRateHelper,
    IborIborBasisSwapRateHelper,
    InterpolatedCurve,
    IterativeBootstrap,
    LinearInterpolator,
    LocalBootstrap,
    LogCubicInterpolator,
    LogLinearInterpolator,
    PiecewiseYieldCurve,
    ZeroYield,
)
from curvelib.errors import (
    ConvergenceError,
    CurveConfigurationError,
    ExtrapolationError,
    HelperNotReadyError,
    InvalidQuoteError,
)
from curvelib.handles import Handle
from curvelib.indexes import IborIndex
from curvelib.pricers import BondPricer, SwapPricer, make_vanilla_swap
from curvelib.quotes import SimpleQuote
from curvelib.settings import Settings

from conftest import TODAY, Flag

RATE_TOLERANCE = 1.0e-9
PRICE_TOLERANCE = 1.0e-9
FUTURES_TOLERANCE = 1.0e-8

VARIANTS = [
    (Discount, LogLinearInterpolator),
    (Discount, LinearInterpolator),
    (Discount, LogCubicInterpolator),
    (ZeroYield, LinearInterpolator),
    (ZeroYield, LogLinearInterpolator),
    (ZeroYield, CubicSplineInterpolator),
    (ForwardRate, BackwardFlatInterpolator),
    (ForwardRate, LinearInterpolator),
    (ForwardRate, ConvexMonotoneInterpolator),
]
VARIANT_IDS = [f"{trait.__name__}-{interp.__name__}" for trait, interp in VARIANTS]


def build_curve(helpers, calendar, trait=Discount, interpolator=LogLinearInterpolator, **kwargs):
    """Moving curve settling two business days after the evaluation date."""
    return PiecewiseYieldCurve(
        helpers, trait(), interpolator(),
        day_count=DayCount.ACT_360,
        settlement_days=2,
        calendar=calendar,
        **kwargs
    )


def check_swaps(curve, market):
    """Swap quotes are recovered by pricing the swaps off the curve."""
    spot = market.calendar.advance(TODAY, 2, 'D')
    index = market.euribor6m.clone(Handle(curve))
    pricer = SwapPricer(curve)
    for tenor, quote in market.swap_quotes.items():
        swap = make_vanilla_swap(
            spot, tenor, index,
            fixed_tenor="1Y",
            fixed_convention=BusinessDayConvention.UNADJUSTED,
            fixed_day_count=DayCount.THIRTY_E_360,
            calendar=market.calendar,
        )
        error = pricer.fair_rate(swap) - quote.value()
        assert abs(error) < RATE_TOLERANCE, f"{tenor} swap error {error:.3e}"


def check_deposits(curve, market):
    for helper in market.deposit_helpers:
        rate = curve.forward_rate(
            helper.earliest_date(), helper.maturity_date(), DayCount.ACT_360, CompoundingConvention.SIMPLE
        ).rate
        assert abs(rate - helper.quote_value()) < RATE_TOLERANCE


class TestCurveConsistency:
    """Every trait/interpolator combination reprices its instruments."""

    @pytest.mark.parametrize("trait,interpolator", VARIANTS, ids=VARIANT_IDS)
    def test_deposits_and_swaps(self, market, trait, interpolator):
        curve = build_curve(market.rate_helpers, market.calendar, trait, interpolator)

        check_deposits(curve, market)
        check_swaps(curve, market)
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE

    @pytest.mark.parametrize("trait,interpolator", VARIANTS, ids=VARIANT_IDS)
    def test_fras(self, market, trait, interpolator):
        curve = build_curve(market.fra_helpers, market.calendar, trait, interpolator)
        for helper in market.fra_helpers:
            rate = curve.forward_rate(
                helper.earliest_date(), helper.maturity_date(), DayCount.ACT_360, CompoundingConvention.SIMPLE
            ).rate
            assert abs(rate - helper.quote_value()) < RATE_TOLERANCE

    @pytest.mark.parametrize("trait,interpolator", VARIANTS, ids=VARIANT_IDS)
    def test_bonds(self, market, trait, interpolator):
        curve = build_curve(market.bond_helpers, market.calendar, trait, interpolator)
        pricer = BondPricer(curve)
        for helper, quote in zip(market.bond_helpers, market.bond_quotes):
            bond = helper.bond
            price = pricer.clean_price(bond, bond.settlement_date())
            assert abs(price - quote.value()) < PRICE_TOLERANCE

    @pytest.mark.parametrize("trait,interpolator", VARIANTS, ids=VARIANT_IDS)
    def test_unit_discount_at_reference(self, market, trait, interpolator):
        curve = build_curve(market.rate_helpers, market.calendar, trait, interpolator)
        assert curve.discount(curve.reference_date) == 1.0

    @pytest.mark.parametrize("trait,interpolator", VARIANTS, ids=VARIANT_IDS)
    def test_nodes_at_pillars(self, market, trait, interpolator):
        """One node at the reference date plus one per instrument pillar."""
        curve = build_curve(market.rate_helpers, market.calendar, trait, interpolator)
        dates = curve.dates()
        assert dates[0] == curve.reference_date
        assert dates[1:] == [h.pillar_date() for h in curve.helpers]
        assert dates == sorted(dates)


class TestLocalBootstrap:
    """Tests for the windowed bootstrap."""

    def test_convex_monotone_consistency(self, market):
        curve = build_curve(
            market.rate_helpers, market.calendar, ForwardRate, ConvexMonotoneInterpolator,
            bootstrap=LocalBootstrap()
        )
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < 1.0e-7

    def test_fra_consistency(self, market):
        curve = build_curve(
            market.fra_helpers, market.calendar, ForwardRate, ConvexMonotoneInterpolator,
            bootstrap=LocalBootstrap()
        )
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < 1.0e-7

    def test_helpers_ready_before_first_query(self, market):
        """Helpers handed out by a fresh curve are already linked to it."""
        curve = build_curve(
            market.rate_helpers, market.calendar, ForwardRate, ConvexMonotoneInterpolator,
            bootstrap=LocalBootstrap()
        )
        assert not curve.is_calculated
        helpers = curve.helpers
        assert curve.is_calculated
        assert all(h.term_structure is curve for h in helpers)
        assert abs(helpers[0].quote_error()) < 1.0e-7

    def test_requires_local_interpolator(self, market):
        with pytest.raises(CurveConfigurationError):
            build_curve(market.rate_helpers, market.calendar, bootstrap=LocalBootstrap())

    def test_requires_enough_instruments(self, market):
        with pytest.raises(CurveConfigurationError):
            build_curve(
                market.deposit_helpers[:1], market.calendar, ForwardRate, ConvexMonotoneInterpolator,
                bootstrap=LocalBootstrap()
            )

    def test_invalid_localisation(self):
        with pytest.raises(ValueError):
            LocalBootstrap(localisation=0)

    def test_updates_after_quote_change(self, market):
        curve = build_curve(
            market.rate_helpers, market.calendar, ForwardRate, ConvexMonotoneInterpolator,
            bootstrap=LocalBootstrap()
        )
        curve.discount(5.0)
        market.swap_quotes["5Y"].set_value(0.051)
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < 1.0e-7


class TestLazyBehaviour:
    """Tests for notification and recalculation."""

    def test_observability(self, market):
        """Every quote change reaches the curve's observers."""
        curve = build_curve(market.rate_helpers, market.calendar)
        flag = Flag(curve)
        for quote in market.rate_quotes:
            flag.lower()
            quote.set_value(quote.value() * 1.01)
            assert flag.up

    def test_single_notification_per_change(self, market):
        curve = build_curve(market.rate_helpers, market.calendar)
        flag = Flag(curve)
        market.swap_quotes["10Y"].set_value(0.055)
        assert flag.count == 1

    def test_todays_fixing_reaches_curve(self, market):
        """Storing today's index fixing rebuilds swap curves around it."""
        curve = build_curve(market.swap_helpers, market.calendar)
        check_swaps(curve, market)
        flag = Flag(curve)

        market.euribor6m.add_fixing(TODAY, 0.0425)

        assert flag.up
        assert not curve.is_calculated
        check_swaps(curve, market)

    def test_bootstrap_deferred_until_query(self, market):

        """Quote changes only mark the curve dirty."""
        curve = build_curve(market.rate_helpers, market.calendar)
        calls = []
        run = curve.bootstrap.calculate

        def counting(c):
            calls.append(1)
            run(c)

        curve.bootstrap.calculate = counting

        curve.discount(1.0)
        curve.discount(2.0)
        assert len(calls) == 1

        market.deposit_quotes["3M"].set_value(0.046)
        market.deposit_quotes["6M"].set_value(0.045)
        assert not curve.is_calculated
        assert len(calls) == 1

        curve.discount(1.0)
        assert len(calls) == 2

    def test_bumped_curve_reprices(self, market):
        """After a bump the curve moves and reprices the new quotes."""
        curve = build_curve(market.rate_helpers, market.calendar)
        before = curve.discount(5.0)
        for quote in market.rate_quotes:
            quote.set_value(quote.value() * 1.01)

        assert curve.discount(5.0) < before
        check_deposits(curve, market)
        check_swaps(curve, market)

    def test_recalculation_is_stable(self, market):
        """Bumping and restoring a quote restores the curve."""
        curve = build_curve(market.rate_helpers, market.calendar, ZeroYield, CubicSplineInterpolator)
        before = [curve.discount(t) for t in (0.5, 3.0, 12.0)]
        quote = market.swap_quotes["7Y"]
        original = quote.value()

        quote.set_value(original + 0.001)
        curve.discount(1.0)
        quote.set_value(original)

        after = [curve.discount(t) for t in (0.5, 3.0, 12.0)]
        for a, b in zip(before, after):
            assert abs(a - b) < 1e-10

    def test_clone_is_frozen_snapshot(self, market):
        """Clones keep the values at copy time."""
        curve = build_curve(market.rate_helpers, market.calendar)
        t = 2.718
        base = curve.discount(t)
        clone = curve.clone()
        flag = Flag(clone)

        for quote in market.rate_quotes:
            quote.set_value(quote.value() + 0.001)

        assert isinstance(clone, InterpolatedCurve)
        assert clone.is_frozen
        assert not flag.up
        assert abs(curve.discount(t) - base) > 1e-6
        assert abs(clone.discount(t) - base) < 1e-15
        assert clone.reference_date == curve.reference_date

    def test_evaluation_date_change(self, market):
        """Moving curves and their helpers follow the evaluation date."""
        curve = build_curve(market.rate_helpers, market.calendar)
        curve.discount(1.0)
        flag = Flag(curve)

        Settings.instance().evaluation_date = date(2024, 1, 16)

        assert flag.up
        assert curve.reference_date == date(2024, 1, 18)
        assert curve.dates()[0] == date(2024, 1, 18)
        assert curve.dates()[1] == market.deposit_helpers[0].pillar_date()
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE

    def test_fixed_reference_date(self, market):
        curve = PiecewiseYieldCurve(
            market.rate_helpers, Discount(), LogLinearInterpolator(),
            reference_date=date(2024, 1, 17), day_count=DayCount.ACT_360
        )
        Settings.instance().evaluation_date = date(2024, 1, 16)
        assert curve.reference_date == date(2024, 1, 17)
        assert not curve.moving


class TestValidation:
    """Tests for configuration errors."""

    def test_no_helpers(self, calendar):
        with pytest.raises(CurveConfigurationError):
            build_curve([], calendar)

    def test_duplicate_pillars(self, market):
        """6M deposit and 3x6 FRA share a pillar."""
        with pytest.raises(CurveConfigurationError):
            build_curve(market.deposit_helpers + market.fra_helpers, market.calendar)

    def test_unsupported_interpolator(self, market):
        with pytest.raises(CurveConfigurationError):
            build_curve(market.rate_helpers, market.calendar, Discount, BackwardFlatInterpolator)

    def test_invalid_accuracy(self, market):
        with pytest.raises(CurveConfigurationError):
            build_curve(market.rate_helpers, market.calendar, accuracy=0.0)

    def test_bootstrap_serves_one_curve(self, market):
        bootstrap = IterativeBootstrap()
        build_curve(market.deposit_helpers, market.calendar, bootstrap=bootstrap)
        with pytest.raises(CurveConfigurationError):
            build_curve(market.swap_helpers, market.calendar, bootstrap=bootstrap)

    def test_invalid_quote(self, market):
        curve = build_curve(market.rate_helpers, market.calendar)
        market.deposit_quotes["1M"].reset()
        with pytest.raises(InvalidQuoteError):
            curve.discount(1.0)

    def test_negative_rate_with_log_interpolation(self, market):
        """Log interpolators cannot represent negative rates."""
        curve = build_curve(market.rate_helpers, market.calendar)
        market.deposit_quotes["1W"].set_value(-0.001)
        with pytest.raises(CurveConfigurationError):
            curve.discount(1.0)

    def test_negative_rate_rejected_at_construction(self, market):
        market.deposit_quotes["1W"].set_value(-0.001)
        with pytest.raises(CurveConfigurationError):
            build_curve(market.rate_helpers, market.calendar, Discount, LogLinearInterpolator)
        with pytest.raises(CurveConfigurationError):
            build_curve(market.rate_helpers, market.calendar, ZeroYield, LogLinearInterpolator)

    def test_negative_rates_with_linear_discount(self, market):
        for quote in market.rate_quotes:
            quote.set_value(quote.value() - 0.06)
        curve = build_curve(market.rate_helpers, market.calendar, Discount, LinearInterpolator)
        assert curve.discount(1.0) > 1.0
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE

    def test_helper_without_curve(self, market):
        with pytest.raises(HelperNotReadyError):
            market.deposit_helpers[0].implied_quote()


class TestConvergence:
    """Tests for bootstrap failures."""

    def test_unreachable_quote(self, market):
        """A quote outside the trait bounds reports the failing instrument."""
        curve = build_curve(market.rate_helpers, market.calendar, accuracy=1e-12)
        market.deposit_quotes["1W"].set_value(5.0)

        with pytest.raises(ConvergenceError) as info:
            curve.discount(1.0)

        error = info.value
        assert error.instrument_index == 1
        assert error.pillar_date == market.deposit_helpers[0].pillar_date()
        assert error.tolerance == 1e-12
        assert error.iteration == 1
        assert math.isfinite(error.residual)
        assert not curve.is_calculated

    def test_recovers_after_failure(self, market):
        curve = build_curve(market.rate_helpers, market.calendar)
        quote = market.deposit_quotes["1W"]
        original = quote.value()
        quote.set_value(5.0)
        with pytest.raises(ConvergenceError):
            curve.discount(1.0)
        quote.set_value(original)
        check_swaps(curve, market)

    def test_iteration_cap(self, market):
        """Global interpolators stop after the pass limit."""
        curve = build_curve(
            market.rate_helpers, market.calendar, Discount, LogCubicInterpolator,
            bootstrap=IterativeBootstrap(max_iterations=2)
        )
        with pytest.raises(ConvergenceError) as info:
            curve.discount(1.0)
        assert info.value.iteration == 2


class TestCurveQueries:
    """Tests for queries on a bootstrapped curve."""

    @pytest.fixture
    def curve(self, market):
        return build_curve(market.rate_helpers, market.calendar)

    def test_extrapolation(self, curve):
        last = curve.max_date()
        assert last == curve.helpers[-1].pillar_date()
        curve.discount(last)
        with pytest.raises(ExtrapolationError):
            curve.discount(last + timedelta(days=1))
        assert curve.discount(last + timedelta(days=365), extrapolate=True) < curve.discount(last)

    def test_forward_rate_day_count(self, curve):
        d1 = date(2025, 1, 17)
        d2 = date(2025, 7, 17)
        fwd = curve.forward_rate(d1, d2, DayCount.ACT_360, CompoundingConvention.SIMPLE)
        expected = (curve.discount(d1) / curve.discount(d2) - 1.0) / year_fraction(d1, d2, DayCount.ACT_360)
        assert fwd.day_count == DayCount.ACT_360
        assert abs(fwd.rate - expected) < 1e-14

    def test_discounts_decrease(self, curve):
        dfs = [curve.discount(t / 4.0) for t in range(0, 120)]
        assert all(a > b for a, b in zip(dfs, dfs[1:]))

    def test_to_frame(self, curve):
        frame = curve.to_frame()
        assert len(frame) == 22
        assert frame["discount"].iloc[0] == 1.0

    def test_jumps(self, market):
        """Curves with jumps still reprice."""
        jump = SimpleQuote(0.999)
        curve = build_curve(market.rate_helpers, market.calendar, jumps=[jump])
        flag = Flag(curve)

        assert curve.discount(curve.reference_date) == 1.0
        assert curve.jump_dates() == [date(2024, 12, 31)]
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE

        jump.set_value(0.998)
        assert flag.up
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE


class TestOtherInstruments:
    """Tests for futures and basis swap helpers."""

    def test_futures(self, market):
        calendar = market.calendar
        convexity = SimpleQuote(0.0001)
        prices = [(date(2024, 3, 20), 95.40), (date(2024, 6, 19), 95.50),
                  (date(2024, 9, 18), 95.62), (date(2024, 12, 18), 95.75)]
        futures = [
            FuturesRateHelper(
                SimpleQuote(price), imm, 3, calendar,
                BusinessDayConvention.MODIFIED_FOLLOWING, True, DayCount.ACT_360,
                convexity_adjustment=convexity
            )
            for imm, price in prices
        ]
        helpers = market.deposit_helpers[:2] + futures
        curve = build_curve(helpers, calendar)

        for helper, (imm, price) in zip(futures, prices):
            fwd = curve.forward_rate(imm, helper.maturity_date(), DayCount.ACT_360,
                                     CompoundingConvention.SIMPLE).rate
            implied = 100.0 * (1.0 - (fwd + convexity.value()))
            assert abs(implied - price) < FUTURES_TOLERANCE
            assert helper.latest_date() == helper.maturity_date()
            assert not helper.quote_is_rate()

        flag = Flag(curve)
        convexity.set_value(0.0002)
        assert flag.up
        for helper in curve.helpers:
            assert abs(helper.quote_error()) < FUTURES_TOLERANCE

    def test_futures_require_imm_date(self, calendar):
        with pytest.raises(CurveConfigurationError):
            FuturesRateHelper(95.0, date(2024, 3, 21), 3, calendar)

    def test_basis_swaps(self, market):
        """Bootstrap a 3M forecasting curve from 3M/6M basis spreads."""
        calendar = market.calendar
        discount = FlatForward(None, 0.04, DayCount.ACT_365, settlement_days=2, calendar=calendar)
        six_month = FlatForward(None, 0.045, DayCount.ACT_365, settlement_days=2, calendar=calendar)
        other = market.euribor6m.clone(Handle(six_month))
        base = IborIndex.euribor("3M", calendar=calendar)

        spreads = [("1Y", 0.0008), ("2Y", 0.0009), ("3Y", 0.0010), ("5Y", 0.0011)]
        helpers = [
            IborIborBasisSwapRateHelper(
                spread, tenor, 2, calendar, BusinessDayConvention.MODIFIED_FOLLOWING, False,
                base, other, Handle(discount), True
            )
            for tenor, spread in spreads
        ]
        curve = build_curve(helpers, calendar)

        for helper in curve.helpers:
            assert abs(helper.quote_error()) < RATE_TOLERANCE
            assert not helper.quote_is_rate()

        start = curve.reference_date
        three_month = base.clone(Handle(curve))
        assert three_month.forecast_rate(start, calendar.advance(start, 3, 'M')) < \
            other.forecast_rate(start, calendar.advance(start, 6, 'M'))

    def test_deposit_from_index(self, market):
        """Deposits can take their conventions from an index."""
        index = IborIndex.euribor("3M", calendar=market.calendar)
        helper = DepositRateHelper(0.0455, index=index)
        assert helper.earliest_date() == date(2024, 1, 17)
        assert helper.maturity_date() == date(2024, 4, 17)
