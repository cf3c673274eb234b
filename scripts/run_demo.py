#!/usr/bin/env python
"""
Curve Library Demo Script

This script demonstrates the curve building workflow:
1. Load market quotes
2. Bootstrap curves with several trait/interpolator combinations
3. Check that every instrument reprices
4. Bump a quote and let the curve rebuild itself
5. Export node tables

Usage:
    python run_demo.py [--quotes QUOTES_CSV] [--output-dir OUTPUT_DIR]
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from curvelib.conventions import CompoundingConvention, DayCount
from curvelib.curves import (
    ConvexMonotoneInterpolator,
    ForwardRate,
    LocalBootstrap,
    PiecewiseYieldCurve,
    bootstrap_from_quotes,
    helpers_from_quotes,
)
from curvelib.settings import Settings

COMBINATIONS = [
    ("discount", "log_linear"),
    ("discount", "log_cubic"),
    ("zero_yield", "linear"),
    ("zero_yield", "cubic"),
    ("forward_rate", "backward_flat"),
    ("forward_rate", "convex_monotone"),
]


def load_quotes(path: Path) -> pd.DataFrame:
    """Load market quotes from CSV."""
    return pd.read_csv(path, comment="#")


def bootstrap_all(quotes_df: pd.DataFrame) -> dict:
    """Bootstrap one curve per trait/interpolator combination."""
    print("\n" + "="*60)
    print("Bootstrapping Curves")
    print("="*60)

    results = {}
    for trait, interpolator in COMBINATIONS:
        result = bootstrap_from_quotes(
            None, quotes_df, trait=trait, interpolator=interpolator, day_count=DayCount.ACT_360
        )
        name = f"{trait}/{interpolator}"
        status = "OK" if result.success else "FAILED"
        worst = max((abs(e) for e in result.repricing_errors.values()), default=float("nan"))
        print(f"  {name:30s} {status:>6s} | max error: {worst:.2e}")
        if not result.success:
            print(f"    {result.message}")
        results[name] = result
    return results


def compare_curves(results: dict, tenors_in_years: list) -> pd.DataFrame:
    """Zero rates of every successful curve at the given times."""
    print("\n" + "="*60)
    print("Zero Rates (ACT/365, continuous)")
    print("="*60)

    rows = []
    for t in tenors_in_years:
        row = {"years": t}
        for name, result in results.items():
            if result.success:
                zero = result.curve.zero_rate(t, DayCount.ACT_365, CompoundingConvention.CONTINUOUS)
                row[name] = zero.rate
        rows.append(row)

    table = pd.DataFrame(rows).set_index("years")
    print((table * 100).round(4).to_string())
    return table


def show_nodes(result) -> None:
    """Print the node table of one curve."""
    if not result.success:
        return
    print("\n" + "="*60)
    print("Node Table (discount/log_linear)")
    print("="*60)
    print(result.curve.to_frame().to_string(index=False))


def show_repricing(quotes_df: pd.DataFrame) -> PiecewiseYieldCurve:
    """Local convex monotone bootstrap with per-instrument repricing."""
    print("\n" + "="*60)
    print("Convex Monotone Forward Curve (local bootstrap)")
    print("="*60)

    helpers = helpers_from_quotes(quotes_df)
    curve = PiecewiseYieldCurve(
        helpers, ForwardRate(), ConvexMonotoneInterpolator(),
        day_count=DayCount.ACT_360, settlement_days=2, bootstrap=LocalBootstrap()
    )
    for helper in curve.helpers:
        print(f"  {type(helper).__name__:22s} {helper.pillar_date()} | "
              f"quote: {helper.quote_value():>10.6f} | error: {helper.quote_error():.2e}")
    return curve


def bump_and_rebuild(quotes_df: pd.DataFrame) -> None:
    """Show lazy recalculation after a quote change."""
    print("\n" + "="*60)
    print("Quote Bump")
    print("="*60)

    helpers = helpers_from_quotes(quotes_df)
    curve = PiecewiseYieldCurve(
        helpers, ForwardRate(), ConvexMonotoneInterpolator(),
        day_count=DayCount.ACT_360, settlement_days=2
    )
    t = 10.0
    before = curve.discount(t)
    snapshot = curve.clone()
    helper = curve.helpers[-1]
    quote = helper.quote.current_link()
    quote.set_value(quote.value() + 0.0001)
    print(f"  Bumped {helper!r} by 1bp")
    print(f"  Curve calculated after bump: {curve.is_calculated}")
    after = curve.discount(t)
    print(f"  P({t:.0f}Y): {before:.8f} -> {after:.8f}")
    print(f"  Clone before bump:  P({t:.0f}Y) = {snapshot.discount(t):.8f}")
    print(f"  Repricing error after rebuild: {helper.quote_error():.2e}")


def export_nodes(results: dict, output_dir: Path) -> None:
    """Write each curve's node table to CSV."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, result in results.items():
        if not result.success:
            continue
        path = output_dir / f"nodes_{name.replace('/', '_')}.csv"
        result.curve.to_frame().to_csv(path, index=False)
        print(f"  - {path}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Curve Library Demo")
    parser.add_argument(
        "--quotes",
        type=str,
        default=None,
        help="CSV of market quotes (instrument_type, tenor, quote)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default="./output",
        help="Output directory for node tables"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log bootstrap progress"
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    script_dir = Path(__file__).parent
    quotes_path = Path(args.quotes) if args.quotes else script_dir.parent / "data" / "sample_quotes" / "eur_quotes.csv"
    output_dir = Path(args.output_dir)

    valuation_date = date(2024, 1, 15)
    Settings.instance().evaluation_date = valuation_date

    print("="*60)
    print("CURVE LIBRARY DEMO")
    print(f"Valuation Date: {valuation_date}")
    print("="*60)

    quotes_df = load_quotes(quotes_path)
    print(f"\nLoaded {len(quotes_df)} quotes from {quotes_path}")
    print(quotes_df.groupby("instrument_type").size().to_string())

    results = bootstrap_all(quotes_df)
    compare_curves(results, [0.25, 0.5, 1, 2, 5, 10, 20, 30])
    show_nodes(results["discount/log_linear"])
    show_repricing(quotes_df)
    bump_and_rebuild(quotes_df)

    print("\nExporting node tables:")
    export_nodes(results, output_dir)

    print("\n" + "="*60)
    print("DEMO COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
