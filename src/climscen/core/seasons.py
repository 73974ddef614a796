from __future__ import annotations

import numpy as np
import pandas as pd

SPRING_SUMMER = "spring_summer"
FALL_WINTER = "fall_winter"

SPRING_SUMMER_MONTHS = (3, 4, 5, 6, 7, 8)


def season_of_month(month: int) -> str:
    return SPRING_SUMMER if int(month) in SPRING_SUMMER_MONTHS else FALL_WINTER


def season_year(year: int, month: int) -> int:
    """
    Accounting year of a date.

    A fall/winter period runs Sep(Y)..Feb(Y+1) and is labelled Y, so January and February
    belong to the previous calendar year. Every other month keeps its calendar year.
    """
    return int(year) - 1 if int(month) in (1, 2) else int(year)


def assign_seasons(dates: pd.Series) -> pd.DataFrame:
    """
    Vectorized (season, season_year) key for a series of dates.

    Returns a frame aligned on ``dates.index`` with columns ``season`` and ``season_year``.
    """
    d = pd.to_datetime(dates)
    month = d.dt.month.astype(int)
    year = d.dt.year.astype(int)

    season = np.where(month.isin(SPRING_SUMMER_MONTHS), SPRING_SUMMER, FALL_WINTER)
    sy = np.where(month.isin((1, 2)), year - 1, year)

    return pd.DataFrame({"season": season, "season_year": sy.astype(int)}, index=dates.index)


def classify_days(df: pd.DataFrame, precip_col: str, date_col: str = "date") -> pd.DataFrame:
    """
    Tag every row once with month, season, season_year and wet/dry status.
    Downstream steps reuse these columns instead of re-deriving masks.
    """
    out = df.copy()
    out["month"] = pd.to_datetime(out[date_col]).dt.month.astype(int)
    keys = assign_seasons(out[date_col])
    out["season"] = keys["season"]
    out["season_year"] = keys["season_year"]
    out["is_wet"] = out[precip_col].astype(float) > 0
    return out
