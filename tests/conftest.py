from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from trade_analyst.data import clean_trade_data

YEARS = list(range(2006, 2015))
N_CATEGORIES = 30


def _record(year, category, value, flow="Export", country="Atlantis", weight=1000.0):
    return {
        "country_or_area": country,
        "year": year,
        "comm_code": "010011",
        "commodity": "Some commodity",
        "flow": flow,
        "trade_usd": value,
        "weight_kg": weight,
        "quantity_name": "Weight in kilograms",
        "quantity": weight,
        "category": category,
    }


@pytest.fixture
def scenario_raw() -> pd.DataFrame:
    return pd.DataFrame(
        [
            _record(2010, "01_live_animals", 1_000_000),
            _record(2011, "01_live_animals", 1_500_000),
            _record(2010, "02_meat", 2_000_000),
        ]
    )


@pytest.fixture
def scenario_frame(scenario_raw) -> pd.DataFrame:
    return clean_trade_data(scenario_raw).frame


@pytest.fixture
def synthetic_raw() -> pd.DataFrame:
    """Odd categories grow every year, even ones shrink; split over two countries."""
    rows = []
    for i in range(1, N_CATEGORIES + 1):
        category = f"{i:02d}_commodity_group_{i}"
        slope = 1.0 if i % 2 else -0.5
        for year in YEARS:
            total = 1e6 * (10 + i + (year - YEARS[0]) * slope)
            rows.append(_record(year, category, total * 0.6, country="Atlantis"))
            rows.append(_record(year, category, total * 0.4, country="Lemuria", weight=np.nan))
            rows.append(_record(year, category, total * 0.1, flow="Import"))
    rows.append(_record(2010, "TOTAL", 5e6))
    rows.append(_record(2010, "03_commodity_group_3", np.nan))
    return pd.DataFrame(rows)


@pytest.fixture
def synthetic_csv(tmp_path, synthetic_raw):
    path = tmp_path / "commodity_trade_statistics_data.csv"
    synthetic_raw.to_csv(path, index=False)
    return path
