"""
Direction labels and labelled feature rows for the export classifier.
"""

from __future__ import annotations

import sys
from typing import List, Optional, Sequence

import pandas as pd

from .errors import EmptyResultError

UP = "up"
DOWN = "down"
DIRECTIONS = (UP, DOWN)
LABEL_COLUMN = "direction"


def label_direction(wide: pd.DataFrame, reference_year: int, target_year: int) -> pd.Series:
    """
    Label each category ``up`` when its value rose from ``reference_year`` to
    ``target_year`` and ``down`` otherwise (no change counts as ``down``).

    Categories missing either year are left out entirely.
    """
    for year in (reference_year, target_year):
        if year not in wide.columns:
            raise EmptyResultError("DirectionLabeler", f"year {year} is not present in the matrix")

    pair = wide[[reference_year, target_year]].dropna()
    change = pair[target_year] - pair[reference_year]
    labels = change.gt(0).map({True: UP, False: DOWN})
    labels.name = LABEL_COLUMN
    return labels


def leakage_safe_years(
    change_years: Sequence[int],
    reference_year: int,
    target_year: int,
    drop_recent: Optional[int] = None,
) -> List[int]:
    """
    Choose which change columns may be used as features.

    By default every change labelled after ``reference_year`` is discarded, so
    the labelled move itself is never visible to the model. ``drop_recent``
    instead discards that many of the most recent change columns.
    """
    years = sorted(change_years)
    if drop_recent is None:
        return [year for year in years if year <= reference_year]

    kept = years[: max(len(years) - drop_recent, 0)]
    if any(year >= target_year for year in kept):
        print(
            f"[WARN] drop_recent={drop_recent} keeps change columns at or after "
            f"the target year {target_year}; features overlap the label.",
            file=sys.stderr,
        )
    return kept


def build_labeled_rows(
    changes: pd.DataFrame,
    labels: pd.Series,
    feature_years: Sequence[int],
) -> pd.DataFrame:
    """Join change rows with their direction label; unlabelled categories are dropped."""
    if not feature_years:
        raise EmptyResultError("DirectionLabeler", "no change columns left to use as features")

    features = changes[list(feature_years)].copy()
    features.columns = [f"change_{year}" for year in feature_years]
    labeled = features.join(labels.rename(LABEL_COLUMN), how="inner")
    if labeled.empty:
        raise EmptyResultError("DirectionLabeler", "no category carries both features and a label")
    return labeled


def feature_columns(labeled: pd.DataFrame) -> List[str]:
    return [col for col in labeled.columns if col != LABEL_COLUMN]
