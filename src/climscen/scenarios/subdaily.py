from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from climscen.core.errors import ValidationError
from climscen.core.result import Diagnostics, ScenarioResult
from climscen.core.schema import (
    DELTA_PRECIP,
    DELTA_TEMP,
    ORIGINAL_PRECIP,
    ORIGINAL_TEMP,
    SCENARIO_COLUMNS,
    SCENARIO_PRECIP,
    SUBDAILY,
    SUBDAILY_COLUMNS,
)

logger = logging.getLogger(__name__)


def _daily_frame(scenario: Union[ScenarioResult, pd.DataFrame]) -> pd.DataFrame:
    df = scenario.series if isinstance(scenario, ScenarioResult) else scenario
    missing = [c for c in SCENARIO_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"Scenario series missing columns: {missing}")
    out = df[SCENARIO_COLUMNS].copy()
    out["date"] = pd.to_datetime(out["date"]).dt.normalize()
    if out["date"].duplicated().any():
        raise ValidationError("Scenario series has duplicate dates.")
    return out.rename(columns={c: f"daily_{c}" for c in SCENARIO_COLUMNS if c != "date"})


def propagate_to_subdaily(
    subdaily: pd.DataFrame,
    scenario: Union[ScenarioResult, pd.DataFrame],
    diagnostics: Optional[Diagnostics] = None,
) -> ScenarioResult:
    """
    Carry a daily scenario down to subdaily records of the same dates.

    Precipitation is scaled by the daily ratios (delta_shift / original and scenario / original), only
    where both the subdaily and the daily original precipitation are > 0; otherwise it is 0.
    Temperature gets the day's additive delta-shift offset on every record, keeping the diurnal shape.
    Subdaily records whose date has no daily scenario row keep their original values (matched=False).

    ``subdaily`` has columns timestamp, precipitation, temperature (see io.validators.normalize_subdaily).
    ``scenario`` is a daily ScenarioResult or a previously computed scenario frame.
    """
    diag = diagnostics if diagnostics is not None else Diagnostics()
    daily = _daily_frame(scenario)

    sub = subdaily.copy()
    sub[SUBDAILY.timestamp] = pd.to_datetime(sub[SUBDAILY.timestamp])
    sub = sub.rename(columns={SUBDAILY.precipitation: ORIGINAL_PRECIP, SUBDAILY.temperature: ORIGINAL_TEMP})
    sub["date"] = sub[SUBDAILY.timestamp].dt.normalize()

    merged = sub.merge(daily, on="date", how="left", validate="many_to_one")
    merged = merged.sort_values(SUBDAILY.timestamp, kind="mergesort").reset_index(drop=True)

    matched = merged[f"daily_{ORIGINAL_PRECIP}"].notna().to_numpy()
    sp = merged[ORIGINAL_PRECIP].astype(float).to_numpy()
    st = merged[ORIGINAL_TEMP].astype(float).to_numpy()
    dp = merged[f"daily_{ORIGINAL_PRECIP}"].astype(float).to_numpy()
    ddp = merged[f"daily_{DELTA_PRECIP}"].astype(float).to_numpy()
    dsp = merged[f"daily_{SCENARIO_PRECIP}"].astype(float).to_numpy()
    dt = merged[f"daily_{ORIGINAL_TEMP}"].astype(float).to_numpy()
    ddt = merged[f"daily_{DELTA_TEMP}"].astype(float).to_numpy()

    wet = matched & (sp > 0) & (np.nan_to_num(dp) > 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        delta_p = np.where(wet, sp * (ddp / dp), 0.0)
        scen_p = np.where(wet, sp * (dsp / dp), 0.0)
    delta_t = np.where(matched, st + (ddt - dt), st)

    # Unmatched records carry no scenario effect.
    delta_p = np.where(matched, delta_p, sp)
    scen_p = np.where(matched, scen_p, sp)

    merged[DELTA_PRECIP] = delta_p
    merged[SCENARIO_PRECIP] = scen_p
    merged[DELTA_TEMP] = delta_t
    merged["matched"] = matched

    n_unmatched = int((~matched).sum())
    if n_unmatched:
        diag.unmatched_records += n_unmatched
        diag.warn(
            f"UNMATCHED_SUBDAILY_RECORDS={n_unmatched}",
            f"{n_unmatched} subdaily records could not be matched to daily scenario dates.",
            records=n_unmatched,
        )

    logger.info("Propagated daily scenario to %d subdaily records (%d unmatched)", len(merged), n_unmatched)
    out = merged[SUBDAILY_COLUMNS].copy()
    settings = dict(scenario.settings) if isinstance(scenario, ScenarioResult) else {}
    return ScenarioResult(series=out, policy="subdaily", diagnostics=diag, settings=settings)
