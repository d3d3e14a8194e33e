"""
Data ingestion and cleansing utilities for the commodity trade dataset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

from .config import FLOWS
from .errors import MalformedInputError

REQUIRED_COLUMNS = ("year", "country_or_area", "category", "flow", "trade_usd", "weight_kg")
NUMERIC_COLUMNS = ("trade_usd", "weight_kg")
TEXT_COLUMNS = ("category", "flow", "country_or_area")
_FLOW_LOOKUP = {flow.lower(): flow for flow in FLOWS}

_LEADING_DIGITS = re.compile(r"^\d*")


@dataclass
class LoadReport:
    """Counts of blank numeric cells found while loading."""

    rows: int
    missing_values: Dict[str, int] = field(default_factory=dict)


@dataclass
class TradeDataBundle:
    """Container for the cleaned record frame and the category legend."""

    frame: pd.DataFrame
    legend: pd.DataFrame
    report: LoadReport


def category_code(label: str) -> str:
    """Return the maximal leading digit run of ``label`` (``""`` when there is none)."""
    return _LEADING_DIGITS.match(str(label)).group(0)


def assign_category_codes(categories: pd.Series) -> pd.Series:
    # One lookup per distinct label keeps the label -> code mapping single-valued.
    lookup = {label: category_code(label) for label in categories.dropna().unique()}
    return categories.map(lookup).fillna("")


def build_category_legend(frame: pd.DataFrame) -> pd.DataFrame:
    """First-seen category label per code, with the number of records behind it."""
    if frame.empty:
        return pd.DataFrame(columns=["category_code", "category", "records"])
    grouped = frame.groupby("category_code", sort=True)
    legend = grouped["category"].first().to_frame()
    legend["records"] = grouped.size()
    return legend.reset_index()


def _validate_columns(df: pd.DataFrame, required: Iterable[str]) -> None:
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise MalformedInputError("TableLoader", f"missing required columns: {', '.join(missing)}")


def _parse_numeric(series: pd.Series, column: str) -> pd.Series:
    if pd.api.types.is_numeric_dtype(series):
        return series.astype(float)

    text = series.where(series.notna(), "").astype(str).str.strip().str.replace(",", "", regex=False)
    blank = text == ""
    parsed = pd.to_numeric(text.where(~blank), errors="coerce")
    bad = parsed.isna() & ~blank
    if bad.any():
        examples = ", ".join(repr(v) for v in series[bad].unique()[:3])
        raise MalformedInputError(
            "TableLoader",
            f"{int(bad.sum())} unparsable value(s) in column '{column}' (e.g. {examples})",
        )
    return parsed.astype(float)


def load_raw_data(csv_path: Path) -> pd.DataFrame:
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV path does not exist: {csv_path}")
    # Text columns are matched after header normalisation so "Category" still reads as text.
    header = pd.read_csv(csv_path, nrows=0).columns
    text_columns = {col: str for col in header if str(col).strip().lower() in TEXT_COLUMNS}
    df = pd.read_csv(csv_path, dtype=text_columns)
    return df


def clean_trade_data(df: pd.DataFrame) -> TradeDataBundle:
    working = df.copy()
    working.columns = [str(col).strip().lower() for col in working.columns]
    _validate_columns(working, REQUIRED_COLUMNS)

    year = _parse_numeric(working["year"], "year")
    if year.isna().any():
        raise MalformedInputError("TableLoader", f"{int(year.isna().sum())} record(s) without a year")
    if (year % 1 != 0).any():
        raise MalformedInputError("TableLoader", "column 'year' holds non-integer values")
    working["year"] = year.astype(int)

    missing_values: Dict[str, int] = {}
    for column in NUMERIC_COLUMNS:
        working[column] = _parse_numeric(working[column], column)
        missing_values[column] = int(working[column].isna().sum())

    flow = working["flow"].astype(str).str.strip()
    working["flow"] = flow.str.lower().map(_FLOW_LOOKUP).fillna(flow)
    unknown = sorted(set(working["flow"]) - set(FLOWS))
    if unknown:
        raise MalformedInputError("TableLoader", f"unknown flow value(s): {', '.join(unknown)}")

    working["category"] = working["category"].fillna("").astype(str).str.strip()
    working["country_or_area"] = working["country_or_area"].astype(str).str.strip()
    working["category_code"] = assign_category_codes(working["category"])

    legend = build_category_legend(working)
    report = LoadReport(rows=len(working), missing_values=missing_values)
    return TradeDataBundle(frame=working, legend=legend, report=report)


def load_trade_data(csv_path: Path) -> TradeDataBundle:
    raw = load_raw_data(Path(csv_path))
    return clean_trade_data(raw)
