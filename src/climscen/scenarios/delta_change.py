from __future__ import annotations

import logging
from typing import Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from climscen.core.errors import ConfigurationError, ValidationError
from climscen.core.metrics import stable_sum
from climscen.core.result import Diagnostics
from climscen.core.schema import DAILY, DELTA_PRECIP, DELTA_TEMP, ORIGINAL_PRECIP, ORIGINAL_TEMP
from climscen.scenarios.shift_table import MONTHS, MonthlyShiftTable

logger = logging.getLogger(__name__)

ShiftsLike = Union[MonthlyShiftTable, pd.DataFrame, Mapping[int, Tuple[float, float]]]


def as_shift_table(shifts: ShiftsLike, strict: bool = False) -> MonthlyShiftTable:
    """Coerce a table, frame or {month: (pct, toffset)} mapping into a MonthlyShiftTable."""
    if isinstance(shifts, MonthlyShiftTable):
        if strict and not shifts.is_complete:
            raise ValidationError(f"Monthly shift table is incomplete; missing {shifts.missing_months}")
        return shifts
    if isinstance(shifts, pd.DataFrame):
        return MonthlyShiftTable.from_frame(shifts, strict=strict)
    if isinstance(shifts, Mapping):
        return MonthlyShiftTable.from_mapping(shifts, strict=strict)
    raise ConfigurationError(f"Unsupported shift table type: {type(shifts).__name__}")


def apply_delta_shift(
    daily: pd.DataFrame,
    shifts: ShiftsLike,
    strict: bool = False,
    diagnostics: Optional[Diagnostics] = None,
) -> Tuple[pd.DataFrame, Diagnostics]:
    """
    Apply monthly delta shifts to a daily series.

    Parameters
    ----------
    daily:
        Normalized daily frame with columns date, precipitation, temperature (see io.validators.normalize_daily).
    shifts:
        Monthly shift table. With ``strict=True`` it must cover all 12 months (ValidationError otherwise);
        with ``strict=False`` a missing month is applied as (0, 0) and recorded as MISSING_MONTH_SHIFT.

    Returns
    -------
    (shifted, diagnostics) where ``shifted`` has columns date, month, original_precipitation,
    original_temperature, delta_shift_precipitation, delta_shift_temperature (plus any extra input columns).
    """
    diag = diagnostics if diagnostics is not None else Diagnostics()
    table = as_shift_table(shifts, strict=strict)

    df = daily.copy()
    df[DAILY.date] = pd.to_datetime(df[DAILY.date])
    df = df.sort_values(DAILY.date).reset_index(drop=True)
    df = df.rename(columns={DAILY.precipitation: ORIGINAL_PRECIP, DAILY.temperature: ORIGINAL_TEMP})
    df["month"] = df[DAILY.date].dt.month.astype(int)

    counts = df["month"].value_counts()
    for m in table.missing_months:
        n = int(counts.get(m, 0))
        if n:
            diag.warn(
                f"MISSING_MONTH_SHIFT={m}",
                f"No delta shift found for month {m}; using 0% / 0 degC for {n} days.",
                records=n,
            )

    # Per-month lookup vectors, index 0..11
    mult = np.ones(12, dtype=float)
    toff = np.zeros(12, dtype=float)
    for m in MONTHS:
        s = table.get(m)
        if s is not None:
            mult[m - 1] = s.precip_multiplier
            toff[m - 1] = float(s.temp_offset)

    month_idx = df["month"].to_numpy() - 1
    p = df[ORIGINAL_PRECIP].astype(float).to_numpy()
    t = df[ORIGINAL_TEMP].astype(float).to_numpy()

    # Multipliers scale existing wet-day intensity only; dry days stay exactly 0.
    df[DELTA_PRECIP] = np.where(p > 0, p * mult[month_idx], p)
    df[DELTA_TEMP] = t + toff[month_idx]

    orig_sum = stable_sum(p)
    shifted_sum = stable_sum(df[DELTA_PRECIP].to_numpy())
    logger.info(
        "Delta shift applied to %d days: precipitation %.4f -> %.4f, mean temperature change %.2f",
        len(df), orig_sum, shifted_sum, float(np.mean(toff[month_idx])) if len(df) else 0.0,
    )
    return df, diag
