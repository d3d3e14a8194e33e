"""
Train/test splitting, the direction classifier and the trend regression.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.impute import SimpleImputer
from sklearn.linear_model import LinearRegression
from sklearn.metrics import accuracy_score, confusion_matrix
from sklearn.model_selection import train_test_split
from sklearn.pipeline import Pipeline

from .errors import DegenerateLabelError, EmptyResultError
from .features import DIRECTIONS, LABEL_COLUMN, feature_columns


def stratified_split(
    labeled: pd.DataFrame,
    test_size: float = 0.2,
    random_state: int = 42,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Partition labelled rows into ``(train, test)``, stratified by direction.

    Rows are sorted by index first so the result depends only on the row set,
    the fraction and the seed.
    """
    if not 0.0 < test_size < 1.0:
        raise ValueError("test_size must lie strictly between 0 and 1.")
    if labeled.empty:
        raise EmptyResultError("Splitter", "no labelled rows to split")

    ordered = labeled.sort_index()
    try:
        train, test = train_test_split(
            ordered,
            test_size=test_size,
            random_state=random_state,
            stratify=ordered[LABEL_COLUMN],
        )
    except ValueError as exc:
        raise EmptyResultError(
            "Splitter", f"cannot stratify {len(labeled)} rows at test_size={test_size}: {exc}"
        ) from exc

    train = train.sort_index()
    test = test.sort_index()
    if train.empty or test.empty:
        side = "train" if train.empty else "test"
        raise EmptyResultError(
            "Splitter", f"{side} set is empty ({len(labeled)} rows, test_size={test_size})"
        )
    return train, test


@dataclass
class ClassificationResult:
    predictions: pd.DataFrame
    confusion: pd.DataFrame
    accuracy: float
    feature_importances: Dict[str, float]
    dropped_rows: Dict[str, int] = field(default_factory=dict)
    dropped_features: List[str] = field(default_factory=list)


class DirectionClassifier:
    """
    Random forest over year-change features predicting ``up``/``down``.

    ``missing_policy`` decides how gaps in the change matrix are resolved:
    ``"drop"`` removes incomplete rows, ``"median"`` imputes from the training
    medians after discarding columns that are empty in training.
    """

    def __init__(
        self,
        n_estimators: int = 200,
        random_state: int = 42,
        missing_policy: str = "median",
    ) -> None:
        if missing_policy not in {"median", "drop"}:
            raise ValueError("missing_policy must be either 'median' or 'drop'")
        self.n_estimators = n_estimators
        self.random_state = random_state
        self.missing_policy = missing_policy
        self.estimator_: Optional[Pipeline] = None
        self.feature_columns_: List[str] = []

    def fit_and_score(self, train: pd.DataFrame, test: pd.DataFrame) -> ClassificationResult:
        # Sorted rows keep the seeded bootstrap independent of input order.
        train = train.sort_index()
        test = test.sort_index()
        columns = feature_columns(train)
        dropped_rows = {"train": 0, "test": 0}
        dropped_features: List[str] = []

        if self.missing_policy == "drop":
            complete_train = train.dropna(subset=columns)
            complete_test = test.dropna(subset=columns)
            dropped_rows = {
                "train": len(train) - len(complete_train),
                "test": len(test) - len(complete_test),
            }
            train, test = complete_train, complete_test
        else:
            dropped_features = [col for col in columns if train[col].isna().all()]
            columns = [col for col in columns if col not in dropped_features]

        if train.empty or test.empty:
            side = "train" if train.empty else "test"
            raise EmptyResultError("Classifier", f"{side} set is empty after missing-value handling")
        if not columns:
            raise EmptyResultError("Classifier", "no usable feature columns")
        if train[LABEL_COLUMN].nunique() < 2:
            only = train[LABEL_COLUMN].iloc[0]
            raise DegenerateLabelError(
                "Classifier", f"all {len(train)} training rows are labelled '{only}'"
            )

        self.feature_columns_ = columns
        self.estimator_ = self._make_estimator()
        self.estimator_.fit(train[columns].to_numpy(dtype=float), train[LABEL_COLUMN].to_numpy())

        predicted = self.estimator_.predict(test[columns].to_numpy(dtype=float))
        observed = test[LABEL_COLUMN].to_numpy()

        predictions = pd.DataFrame(
            {"observed": observed, "predicted": predicted},
            index=test.index,
        )
        matrix = confusion_matrix(observed, predicted, labels=list(DIRECTIONS))
        confusion = pd.DataFrame(
            matrix,
            index=pd.Index(DIRECTIONS, name="observed"),
            columns=pd.Index(DIRECTIONS, name="predicted"),
        )
        forest = self.estimator_.named_steps["forest"]
        return ClassificationResult(
            predictions=predictions,
            confusion=confusion,
            accuracy=float(accuracy_score(observed, predicted)),
            feature_importances=_ranked_importances(forest, columns),
            dropped_rows=dropped_rows,
            dropped_features=dropped_features,
        )

    # Internal ------------------------------------------------------------------------

    def _make_estimator(self) -> Pipeline:
        forest = RandomForestClassifier(
            n_estimators=self.n_estimators,
            random_state=self.random_state,
            n_jobs=1,
        )
        steps = []
        if self.missing_policy == "median":
            steps.append(("impute", SimpleImputer(strategy="median")))
        steps.append(("forest", forest))
        return Pipeline(steps)


def _ranked_importances(forest: RandomForestClassifier, feature_names: Sequence[str]) -> Dict[str, float]:
    importances = np.asarray(forest.feature_importances_, dtype=float)

    total = float(np.sum(importances))
    if total == 0.0:
        return {name: 0.0 for name in feature_names}

    normalised = importances / total
    ranked = sorted(zip(feature_names, normalised), key=lambda item: item[1], reverse=True)
    return {name: float(value) for name, value in ranked}


@dataclass
class RegressionResult:
    slope: float
    intercept: float
    r_squared: float
    fitted: pd.DataFrame


def fit_trend_regression(aggregated: pd.DataFrame) -> RegressionResult:
    """Least-squares line through the yearly totals (millions USD) of an aggregated flow."""
    yearly = aggregated.groupby("year", as_index=False)["total_value"].sum()
    if yearly["year"].nunique() < 2:
        raise EmptyResultError("TrendRegressor", "need at least two years to fit a trend")

    X = yearly[["year"]].to_numpy(dtype=float)
    y = yearly["total_value"].to_numpy(dtype=float)
    model = LinearRegression().fit(X, y)

    fitted = yearly.rename(columns={"total_value": "observed"})
    fitted["fitted"] = model.predict(X)
    fitted["residual"] = fitted["observed"] - fitted["fitted"]
    return RegressionResult(
        slope=float(model.coef_[0]),
        intercept=float(model.intercept_),
        r_squared=float(model.score(X, y)),
        fitted=fitted,
    )
