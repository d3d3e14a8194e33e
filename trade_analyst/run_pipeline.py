"""
Command-line entry point for running the export direction pipeline.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import FEATURE_KINDS, FLOWS, MISSING_POLICIES, PipelineConfig
from .errors import TradeAnalysisError
from .pipeline import TradeDirectionPipeline
from .plots import save_plots
from .summary import top_movers


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Summarise commodity trade data and classify year-over-year export direction."
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=Path("data/commodity_trade_statistics_data.csv"),
        help="Path to the commodity trade CSV.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("out"),
        help="Directory for saving matrices, predictions and the confusion matrix.",
    )
    parser.add_argument("--flow", choices=FLOWS, default=None, help="Trade flow to aggregate.")
    parser.add_argument("--country", default=None, help="Restrict aggregation to one country or area.")
    parser.add_argument("--reference-year", type=int, default=None, help="Base year of the labelled change.")
    parser.add_argument("--target-year", type=int, default=None, help="Year whose change is predicted.")
    parser.add_argument("--test-size", type=float, default=None, help="Fraction of rows held out for scoring.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the split and the forest.")
    parser.add_argument(
        "--drop-recent",
        type=int,
        default=None,
        help="Drop this many of the most recent change columns instead of those after the reference year.",
    )
    parser.add_argument("--feature-kind", choices=FEATURE_KINDS, default=None, help="Change matrix used as features.")
    parser.add_argument(
        "--missing-policy",
        choices=MISSING_POLICIES,
        default=None,
        help="How missing feature values are resolved before training.",
    )
    parser.add_argument("--n-estimators", type=int, default=None, help="Number of trees in the forest.")
    parser.add_argument("--plots", action="store_true", help="Save diagnostic plots (PNGs).")
    parser.add_argument("--plot-dir", type=Path, default=Path("plots"), help="Directory to save plots.")
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress verbose pipeline logging.",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    target_year = args.target_year
    if target_year is None and args.reference_year is not None:
        target_year = args.reference_year + 1
    return PipelineConfig.from_env().with_overrides(
        flow=args.flow,
        country=args.country,
        reference_year=args.reference_year,
        target_year=target_year,
        test_size=args.test_size,
        random_state=args.seed,
        drop_recent=args.drop_recent,
        feature_kind=args.feature_kind,
        missing_policy=args.missing_policy,
        n_estimators=args.n_estimators,
    )


def format_millions(value: float) -> str:
    return f"USD {value:,.2f}M"


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
        pipeline = TradeDirectionPipeline(
            data_path=args.data,
            config=config,
            output_dir=args.output_dir,
            verbose=not args.quiet,
        )
        result = pipeline.run()
    except (TradeAnalysisError, FileNotFoundError, ValueError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    summary = result.record_summary.copy()
    for column in ("total_value", "mean_value", "median_value"):
        summary[column] = summary[column].apply(format_millions)

    top = result.top_categories.copy()
    top["total_value"] = top["total_value"].apply(format_millions)
    top["share"] = top["share"].apply(lambda x: f"{x * 100:.1f}%")

    movers = top_movers(result.changes.nominal, config.target_year, n=config.top_n)
    movers["change"] = movers["change"].apply(format_millions)

    print("\n=== Records per flow ===")
    print(summary.to_string())
    print(f"\n=== Top {config.flow} categories ===")
    print(top.to_string(index=False))
    print(f"\n=== Largest moves {config.reference_year} -> {config.target_year} ===")
    print(movers.to_string())
    print(f"\n=== Direction classifier (accuracy {result.classification.accuracy:.3f}) ===")
    print(result.classification.confusion.to_string())
    print(
        f"\nLinear trend: {format_millions(result.regression.slope)} per year, "
        f"R^2 {result.regression.r_squared:.3f}"
    )
    if args.output_dir:
        print("\nOutputs saved to:", args.output_dir.resolve())

    if args.plots:
        save_plots(result, args.plot_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
