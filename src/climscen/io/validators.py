from __future__ import annotations

from typing import List, Optional, Tuple

import pandas as pd

from climscen.core.errors import ValidationError
from climscen.core.result import Diagnostics
from climscen.core.schema import DAILY, SUBDAILY


def _coerce(df: pd.DataFrame, time_col: str, precip_col: str, temp_col: str, to_day: bool) -> pd.DataFrame:
    out = df.copy()
    out[time_col] = pd.to_datetime(out[time_col], errors="coerce")
    if to_day:
        out[time_col] = out[time_col].dt.normalize()
    out[precip_col] = pd.to_numeric(out[precip_col], errors="coerce").astype(float)
    out[temp_col] = pd.to_numeric(out[temp_col], errors="coerce").astype(float)
    return out


def validate_daily(df: pd.DataFrame) -> Tuple[bool, List[str]]:
    """
    Check a daily table against the engine contract.
    Returns (ok, errors); rows with missing values are not errors here, they are dropped by normalize_daily.
    """
    errors: List[str] = []
    required = [DAILY.date, DAILY.precipitation, DAILY.temperature]
    missing = [c for c in required if c not in df.columns]
    if missing:
        return False, [f"Missing column: {c}" for c in missing]

    dates = pd.to_datetime(df[DAILY.date], errors="coerce").dt.normalize()
    dup = dates[dates.notna() & dates.duplicated(keep=False)]
    if not dup.empty:
        sample = sorted({str(d.date()) for d in dup})[:5]
        errors.append(f"Duplicate dates in daily series: {sample}")

    precip = pd.to_numeric(df[DAILY.precipitation], errors="coerce")
    if (precip < 0).any():
        errors.append(f"Negative precipitation in {int((precip < 0).sum())} rows.")

    return len(errors) == 0, errors


def normalize_daily(df: pd.DataFrame, diagnostics: Optional[Diagnostics] = None) -> pd.DataFrame:
    """
    Normalize a daily table handed over by the I/O layer:
    - 'date' to midnight timestamps, numeric precipitation/temperature
    - rows with unparseable date or values are dropped (recorded as DROPPED_INVALID_ROWS)
    - duplicate dates or negative precipitation raise ValidationError
    - sorted by date, index reset
    """
    if df is None or df.empty:
        raise ValidationError("Daily series is empty.")

    ok, errors = validate_daily(df)
    if not ok:
        raise ValidationError("; ".join(errors))

    out = _coerce(df, DAILY.date, DAILY.precipitation, DAILY.temperature, to_day=True)
    n0 = len(out)
    out = out.dropna(subset=[DAILY.date, DAILY.precipitation, DAILY.temperature])
    dropped = n0 - len(out)
    if dropped and diagnostics is not None:
        diagnostics.warn(
            f"DROPPED_INVALID_ROWS={dropped}",
            f"{dropped} daily rows with missing date/values were dropped.",
            records=dropped,
        )
    if out.empty:
        raise ValidationError("No valid daily rows remaining after removing invalid rows.")

    return out.sort_values(DAILY.date).reset_index(drop=True)


def normalize_subdaily(df: pd.DataFrame, diagnostics: Optional[Diagnostics] = None) -> pd.DataFrame:
    """Same as normalize_daily for a subdaily table keyed by 'timestamp' (duplicates allowed, not checked)."""
    if df is None or df.empty:
        raise ValidationError("Subdaily series is empty.")

    required = [SUBDAILY.timestamp, SUBDAILY.precipitation, SUBDAILY.temperature]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValidationError(f"Missing required columns in subdaily series: {missing}")

    out = _coerce(df, SUBDAILY.timestamp, SUBDAILY.precipitation, SUBDAILY.temperature, to_day=False)
    if (out[SUBDAILY.precipitation] < 0).any():
        raise ValidationError(f"Negative precipitation in {int((out[SUBDAILY.precipitation] < 0).sum())} subdaily rows.")

    n0 = len(out)
    out = out.dropna(subset=required)
    dropped = n0 - len(out)
    if dropped and diagnostics is not None:
        diagnostics.warn(
            f"DROPPED_INVALID_ROWS={dropped}",
            f"{dropped} subdaily rows with missing timestamp/values were dropped.",
            records=dropped,
        )
    if out.empty:
        raise ValidationError("No valid subdaily rows remaining after removing invalid rows.")

    return out.sort_values(SUBDAILY.timestamp, kind="mergesort").reset_index(drop=True)
