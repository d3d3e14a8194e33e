"""
High-level orchestration for the export direction analysis.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config import PipelineConfig
from .data import TradeDataBundle, load_trade_data
from .errors import EmptyResultError
from .features import build_labeled_rows, label_direction, leakage_safe_years
from .models import (
    ClassificationResult,
    DirectionClassifier,
    RegressionResult,
    fit_trend_regression,
    stratified_split,
)
from .reshape import ChangeMatrices, aggregate_flow, compute_changes, to_wide
from .summary import describe_records, top_categories, yearly_totals


@dataclass
class PipelineResult:
    config: PipelineConfig
    legend: pd.DataFrame
    record_summary: pd.DataFrame
    yearly: pd.DataFrame
    aggregated: pd.DataFrame
    wide: pd.DataFrame
    changes: ChangeMatrices
    labeled: pd.DataFrame
    train: pd.DataFrame
    test: pd.DataFrame
    classification: ClassificationResult
    regression: RegressionResult
    top_categories: pd.DataFrame

    def save(self, output_dir: Path) -> Dict[str, Path]:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        flow = self.config.flow.lower().replace("-", "_")

        paths = {
            "legend": output_dir / "category_legend.csv",
            "wide": output_dir / f"{flow}_wide.csv",
            "nominal": output_dir / "nominal_change.csv",
            "percent": output_dir / "percent_change.csv",
            "confusion": output_dir / "confusion_matrix.csv",
            "predictions": output_dir / "predictions.csv",
            "regression": output_dir / "trend_regression.csv",
            "top_categories": output_dir / "top_categories.csv",
            "yearly": output_dir / "yearly_totals.csv",
        }
        self.legend.to_csv(paths["legend"], index=False)
        self.wide.to_csv(paths["wide"])
        self.changes.nominal.to_csv(paths["nominal"])
        self.changes.percent.to_csv(paths["percent"])
        self.classification.confusion.to_csv(paths["confusion"])
        self.classification.predictions.to_csv(paths["predictions"])
        self.regression.fitted.to_csv(paths["regression"], index=False)
        self.top_categories.to_csv(paths["top_categories"], index=False)
        self.yearly.to_csv(paths["yearly"])
        return paths


class TradeDirectionPipeline:
    """
    End-to-end pipeline that loads trade records, builds the category x year
    value matrix for one flow, derives year-over-year change, and trains a
    random forest predicting whether each category's value goes up or down
    between the reference and target years.
    """

    def __init__(
        self,
        data_path: Path = Path("data/commodity_trade_statistics_data.csv"),
        config: Optional[PipelineConfig] = None,
        output_dir: Optional[Path] = Path("out"),
        verbose: bool = True,
    ) -> None:
        self.data_path = Path(data_path)
        self.config = (config or PipelineConfig()).validate()
        self.output_dir = Path(output_dir) if output_dir else None
        self.verbose = verbose

    def run(self) -> PipelineResult:
        self._log(f"Loading data from {self.data_path} ...")
        bundle = load_trade_data(self.data_path)
        return self.run_bundle(bundle)

    def run_bundle(self, bundle: TradeDataBundle) -> PipelineResult:
        config = self.config
        report = bundle.report
        self._log(f"Loaded {report.rows:,} records.")
        for column, count in report.missing_values.items():
            if count:
                self._log(f"{count:,} record(s) without '{column}'; counted as zero when summing.")

        frame = self._select_records(bundle.frame)
        record_summary = describe_records(frame)
        yearly = yearly_totals(frame)

        self._log(f"Aggregating '{config.flow}' values per year and category ...")
        aggregated = aggregate_flow(frame, flow=config.flow, country=config.country)
        wide = to_wide(aggregated)
        self._log(
            f"Wide matrix: {wide.shape[0]} categories x {wide.shape[1]} years "
            f"({int(wide.isna().to_numpy().sum())} missing cells)."
        )

        changes = compute_changes(wide)
        if changes.undefined_percent_cells:
            self._log(
                f"{changes.undefined_percent_cells} percent-change cell(s) undefined "
                "because the base year value is zero."
            )

        labels = label_direction(wide, config.reference_year, config.target_year)
        feature_years = leakage_safe_years(
            changes.nominal.columns,
            reference_year=config.reference_year,
            target_year=config.target_year,
            drop_recent=config.drop_recent,
        )
        labeled = build_labeled_rows(changes.get(config.feature_kind), labels, feature_years)
        counts = labeled["direction"].value_counts().to_dict()
        self._log(
            f"Labelled {len(labeled)} categories for {config.reference_year}->{config.target_year} "
            f"({counts.get('up', 0)} up, {counts.get('down', 0)} down) "
            f"using {len(feature_years)} {config.feature_kind} change columns."
        )

        train, test = stratified_split(labeled, test_size=config.test_size, random_state=config.random_state)
        self._log(f"Training random forest on {len(train)} rows, scoring {len(test)} ...")
        classifier = DirectionClassifier(
            n_estimators=config.n_estimators,
            random_state=config.random_state,
            missing_policy=config.missing_policy,
        )
        classification = classifier.fit_and_score(train, test)
        self._report_missing_handling(classification)
        self._log(f"Test accuracy {classification.accuracy:.3f}.")

        regression = fit_trend_regression(aggregated)
        self._log(
            f"Linear trend: {regression.slope:,.2f} million USD per year (R^2 {regression.r_squared:.3f})."
        )

        result = PipelineResult(
            config=config,
            legend=bundle.legend,
            record_summary=record_summary,
            yearly=yearly,
            aggregated=aggregated,
            wide=wide,
            changes=changes,
            labeled=labeled,
            train=train,
            test=test,
            classification=classification,
            regression=regression,
            top_categories=top_categories(aggregated, bundle.legend, n=config.top_n),
        )

        if self.output_dir:
            result.save(self.output_dir)
            self._log(f"Results written to {self.output_dir.resolve()}")

        return result

    # Internal ------------------------------------------------------------------------

    def _select_records(self, frame: pd.DataFrame) -> pd.DataFrame:
        if not self.config.exclude_uncategorized:
            return frame
        uncategorized = frame["category_code"] == ""
        if uncategorized.any():
            self._log(f"Excluding {int(uncategorized.sum()):,} record(s) without a category code.")
        selected = frame.loc[~uncategorized]
        if selected.empty:
            raise EmptyResultError("CategoryNormalizer", "no records carry a category code")
        return selected

    def _report_missing_handling(self, classification: ClassificationResult) -> None:
        dropped: List[str] = [
            f"{count} {side}" for side, count in classification.dropped_rows.items() if count
        ]
        if dropped:
            self._log(f"Dropped rows with missing features: {', '.join(dropped)}.")
        if classification.dropped_features:
            self._log(
                f"Dropped feature columns empty in training: {', '.join(classification.dropped_features)}."
            )

    def _log(self, message: str) -> None:
        if self.verbose:
            print(f"[pipeline] {message}", flush=True)
