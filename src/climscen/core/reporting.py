from __future__ import annotations

from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from climscen.core.metrics import stable_sum
from climscen.core.result import ScenarioResult
from climscen.core.schema import DELTA_PRECIP, DELTA_TEMP, ORIGINAL_PRECIP, ORIGINAL_TEMP, SCENARIO_PRECIP
from climscen.core.seasons import FALL_WINTER, SPRING_SUMMER
from climscen.scenarios.shift_table import MonthlyShiftTable


def _r(x: float, nd: int) -> float:
    x = float(x)
    return round(x, nd) if np.isfinite(x) else float("nan")


def _pct_change(new: float, old: float) -> float:
    return (new / old - 1.0) * 100.0 if old else float("nan")


def _totals(df: pd.DataFrame) -> Dict[str, float]:
    orig = stable_sum(df[ORIGINAL_PRECIP].to_numpy())
    shifted = stable_sum(df[DELTA_PRECIP].to_numpy())
    scen = stable_sum(df[SCENARIO_PRECIP].to_numpy())
    return {
        "original_total": _r(orig, 4),
        "shifted_total": _r(shifted, 4),
        "scenario_total": _r(scen, 4),
        "shift_change_percent": _r(_pct_change(shifted, orig), 2),
    }


def _temperature(df: pd.DataFrame) -> Dict[str, float]:
    t0 = df[ORIGINAL_TEMP].mean()
    t1 = df[DELTA_TEMP].mean()
    return {
        "original_mean": _r(t0, 2),
        "shifted_mean": _r(t1, 2),
        "mean_change": _r((df[DELTA_TEMP] - df[ORIGINAL_TEMP]).mean(), 2),
    }


def _drought_section(df: pd.DataFrame, result: ScenarioResult) -> Dict[str, Any]:
    ss = df["season"] == SPRING_SUMMER
    fw = df["season"] == FALL_WINTER
    wet = df[DELTA_PRECIP] > 0
    fw_factors = df.loc[fw & wet, "scaling_factor"]
    mb = result.diagnostics.mass_balance
    worst = float(mb["mass_balance_error"].max()) if mb is not None and not mb.empty else 0.0
    return {
        "drought_factor": result.settings.get("drought_factor"),
        "seasonal_breakdown": {
            "spring_summer_days": int(ss.sum()),
            "spring_summer_precip_days": int((ss & wet).sum()),
            "fall_winter_days": int(fw.sum()),
            "fall_winter_precip_days": int((fw & wet).sum()),
        },
        "mass_balance_max_error": _r(worst, 6),
        "mass_balance_preserved": bool(mb["balanced"].all()) if mb is not None and not mb.empty else True,
        "scaling_factor_statistics": {
            "spring_summer_scaling_factor": _r(df.loc[ss, "scaling_factor"].mean(), 3) if ss.any() else None,
            "fall_winter_scaling_factor_min": _r(fw_factors.min(), 3) if len(fw_factors) else None,
            "fall_winter_scaling_factor_max": _r(fw_factors.max(), 3) if len(fw_factors) else None,
            "fall_winter_scaling_factor_mean": _r(fw_factors.mean(), 3) if len(fw_factors) else None,
        },
    }


def _stretch_section(result: ScenarioResult) -> Dict[str, Any]:
    d = result.diagnostics
    return {
        "user_parameters": dict(result.settings),
        "optimized_parameters": {k: _r(v, 6) for k, v in (d.parameters or {}).items()},
        "convergence_error_percent": _r((d.convergence_error or 0.0) * 100.0, 4),
        "converged": d.converged,
        "iterations": d.iterations,
    }


def summarize_daily_scenario(
    result: ScenarioResult,
    shifts: Optional[MonthlyShiftTable] = None,
    scenario_name: str = "Default Scenario",
) -> Dict[str, Any]:
    """
    Summary of a daily scenario, ready for the caller to serialize (e.g. as JSON metadata).
    """
    df = result.series
    out: Dict[str, Any] = {
        "scenario_info": {"scenario_name": scenario_name, "scenario_type": result.policy},
        "precipitation_results": {
            **_totals(df),
            "days_with_precipitation": int((df[ORIGINAL_PRECIP] > 0).sum()),
            "days_without_precipitation": int((df[ORIGINAL_PRECIP] == 0).sum()),
        },
        "temperature_results": _temperature(df),
        "data_summary": {
            "total_days_processed": int(len(df)),
            "date_range_start": str(pd.to_datetime(df["date"]).min().date()) if len(df) else None,
            "date_range_end": str(pd.to_datetime(df["date"]).max().date()) if len(df) else None,
        },
        "diagnostics": result.diagnostics.to_dict(),
    }
    if shifts is not None:
        out["monthly_shifts_applied"] = {
            f"Month_{s.month}": {"precip_pct_change": s.precip_pct_change, "temp_offset": s.temp_offset} for s in shifts
        }
    if result.policy == "drought":
        out["drought_results"] = _drought_section(df, result)
    elif result.policy == "stretch":
        out["stretch_results"] = _stretch_section(result)
    return out


def summarize_subdaily_scenario(result: ScenarioResult) -> Dict[str, Any]:
    df = result.series
    ts = pd.to_datetime(df["timestamp"])
    return {
        "total_records": int(len(df)),
        "matched_records": int(df["matched"].sum()),
        "unmatched_records": int((~df["matched"]).sum()),
        "datetime_range_start": ts.min().strftime("%Y-%m-%d %H:%M:%S") if len(df) else None,
        "datetime_range_end": ts.max().strftime("%Y-%m-%d %H:%M:%S") if len(df) else None,
        "records_with_precipitation": int((df[ORIGINAL_PRECIP] > 0).sum()),
        "original_precipitation_total": _r(stable_sum(df[ORIGINAL_PRECIP].to_numpy()), 4),
        "deltashift_precipitation_total": _r(stable_sum(df[DELTA_PRECIP].to_numpy()), 4),
        "scenario_precipitation_total": _r(stable_sum(df[SCENARIO_PRECIP].to_numpy()), 4),
        "temperature": _temperature(df),
    }
