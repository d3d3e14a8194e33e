"""
Descriptive statistics over the loaded records and derived matrices.
"""

from __future__ import annotations

import pandas as pd

from .errors import EmptyResultError
from .reshape import VALUE_SCALE


def describe_records(frame: pd.DataFrame) -> pd.DataFrame:
    """Record count and value statistics (millions USD) per flow."""
    values = frame.assign(value_musd=frame["trade_usd"] / VALUE_SCALE)
    grouped = values.groupby("flow")["value_musd"]
    summary = pd.DataFrame(
        {
            "records": grouped.size(),
            "missing_values": grouped.apply(lambda s: int(s.isna().sum())),
            "total_value": grouped.sum(),
            "mean_value": grouped.mean(),
            "median_value": grouped.median(),
        }
    )
    summary["countries"] = values.groupby("flow")["country_or_area"].nunique()
    return summary.sort_values("total_value", ascending=False)


def yearly_totals(frame: pd.DataFrame) -> pd.DataFrame:
    """Year x flow matrix of total value in millions USD."""
    totals = frame.pivot_table(
        index="year",
        columns="flow",
        values="trade_usd",
        aggfunc="sum",
    )
    return (totals / VALUE_SCALE).sort_index()


def top_categories(aggregated: pd.DataFrame, legend: pd.DataFrame, n: int = 10) -> pd.DataFrame:
    """Categories ranked by their total value over every aggregated year."""
    totals = aggregated.groupby("category_code", as_index=False)["total_value"].sum()
    totals = totals.merge(legend[["category_code", "category"]], on="category_code", how="left")
    totals["share"] = totals["total_value"] / totals["total_value"].sum()
    ranked = totals.sort_values(["total_value", "category_code"], ascending=[False, True])
    return ranked.head(n).reset_index(drop=True)


def top_movers(change: pd.DataFrame, year: int, n: int = 10) -> pd.DataFrame:
    """Largest absolute changes at ``year``; undefined cells never enter the ranking."""
    if year not in change.columns:
        raise EmptyResultError("Summaries", f"no change column for year {year}")

    column = change[year].dropna()
    movers = column.to_frame("change")
    movers["magnitude"] = column.abs()
    movers = movers.sort_values(["magnitude"], ascending=False, kind="mergesort")
    return movers.head(n).drop(columns="magnitude")
