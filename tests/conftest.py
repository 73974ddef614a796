from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from climscen.scenarios.shift_table import MonthlyShiftTable


@pytest.fixture
def daily_series() -> pd.DataFrame:
    """Three years of synthetic daily weather, ~40% wet days."""
    rng = np.random.default_rng(42)
    dates = pd.date_range("2019-01-01", "2021-12-31", freq="D")
    wet = rng.random(len(dates)) < 0.4
    precip = np.where(wet, np.round(rng.gamma(0.8, 6.0, len(dates)), 1), 0.0)
    # rounding can produce exact zeros on "wet" days; that is fine, they are dry
    doy = dates.dayofyear.to_numpy()
    temp = 10.0 + 12.0 * np.sin(2 * np.pi * (doy - 110) / 365.25) + rng.normal(0, 2, len(dates))
    return pd.DataFrame({"date": dates, "precipitation": precip, "temperature": temp})


@pytest.fixture
def shift_table() -> MonthlyShiftTable:
    return MonthlyShiftTable.from_lists(
        precip_pct_change=[10, 8, 5, 0, -5, -15, -20, -15, -5, 0, 5, 10],
        temp_offset=[1.0, 1.2, 1.5, 1.8, 2.0, 2.5, 3.0, 2.8, 2.2, 1.6, 1.2, 1.0],
    )


@pytest.fixture
def subdaily_series() -> pd.DataFrame:
    """Six-hourly readings for 2020-06-01..2020-06-03."""
    ts = pd.date_range("2020-06-01 00:00", periods=12, freq="6h")
    precip = [0.0, 2.0, 3.0, 5.0, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 1.0]
    temp = [15.0, 18.0, 22.0, 17.0, 14.0, 19.0, 23.0, 16.0, 13.0, 20.0, 24.0, 18.0]
    return pd.DataFrame({"timestamp": ts, "precipitation": precip, "temperature": temp})
