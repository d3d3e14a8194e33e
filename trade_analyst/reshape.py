"""
Aggregation, wide reshaping and year-over-year differencing of trade values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from .errors import EmptyResultError

VALUE_SCALE = 1_000_000.0


@dataclass
class ChangeMatrices:
    """Nominal and percent change, labelled by the later year of each pair."""

    nominal: pd.DataFrame
    percent: pd.DataFrame
    undefined_percent_cells: int = 0

    def get(self, kind: str) -> pd.DataFrame:
        if kind == "nominal":
            return self.nominal
        if kind == "percent":
            return self.percent
        raise ValueError(f"Unknown change kind: {kind}")


def aggregate_flow(
    frame: pd.DataFrame,
    flow: str = "Export",
    country: Optional[str] = None,
) -> pd.DataFrame:
    """
    Sum ``trade_usd`` (in millions) per (year, category_code) for a single flow.

    Missing values count as zero. Pairs without matching records are absent
    from the result rather than emitted as zero.
    """
    mask = frame["flow"] == flow
    if country is not None:
        mask &= frame["country_or_area"] == country
    selected = frame.loc[mask, ["year", "category_code", "trade_usd"]]
    if selected.empty:
        scope = f"flow={flow}" + (f", country={country}" if country is not None else "")
        raise EmptyResultError("Aggregator", f"no records match {scope}")

    aggregated = (
        selected.groupby(["year", "category_code"], as_index=False)["trade_usd"]
        .sum()
        .rename(columns={"trade_usd": "total_value"})
    )
    aggregated["total_value"] = aggregated["total_value"] / VALUE_SCALE
    aggregated["year"] = aggregated["year"].astype(int)
    return aggregated.sort_values(["year", "category_code"]).reset_index(drop=True)


def to_wide(aggregated: pd.DataFrame) -> pd.DataFrame:
    """Pivot aggregated cells into a category_code x year matrix (years ascending)."""
    if aggregated.empty:
        raise EmptyResultError("WideReshaper", "empty input after filtering")

    wide = aggregated.pivot(index="category_code", columns="year", values="total_value")
    wide = wide.reindex(columns=sorted(wide.columns)).sort_index()
    wide.index.name = "category_code"
    wide.columns.name = "year"
    return wide.astype(float)


def from_wide(wide: pd.DataFrame) -> pd.DataFrame:
    """Inverse of :func:`to_wide`; missing cells are dropped."""
    long = (
        wide.rename_axis(index="category_code", columns=None)
        .reset_index()
        .melt(id_vars="category_code", var_name="year", value_name="total_value")
    )
    long = long.dropna(subset=["total_value"])
    long["year"] = long["year"].astype(int)
    long = long[["year", "category_code", "total_value"]]
    return long.sort_values(["year", "category_code"]).reset_index(drop=True)


def compute_changes(wide: pd.DataFrame) -> ChangeMatrices:
    """
    Year-over-year change between each year column and the column before it.

    Columns are paired by their year labels after sorting, so unsorted or
    non-contiguous years are handled without positional assumptions.
    """
    years = sorted(wide.columns)
    if len(years) < 2:
        raise EmptyResultError("ChangeComputer", f"need at least two years, got {len(years)}")

    ordered = wide.reindex(columns=years).astype(float)
    later = ordered[years[1:]]
    earlier = ordered[years[:-1]]
    earlier.columns = pd.Index(years[1:], name="year")

    nominal = later - earlier
    base = earlier.where(earlier != 0)
    percent = nominal / base

    zero_base = int(((earlier == 0) & nominal.notna()).to_numpy().sum())
    percent = percent.replace([np.inf, -np.inf], np.nan)

    nominal.columns.name = "year"
    percent.columns.name = "year"
    return ChangeMatrices(nominal=nominal, percent=percent, undefined_percent_cells=zero_base)
