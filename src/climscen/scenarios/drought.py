from __future__ import annotations

import logging
from typing import List, Optional

import numpy as np
import pandas as pd

from climscen.core.errors import ValidationError
from climscen.core.metrics import MASS_BALANCE_TOLERANCE, mass_balance_error, stable_sum
from climscen.core.result import Diagnostics, ScenarioResult
from climscen.core.schema import DELTA_PRECIP, SCENARIO_COLUMNS, SCENARIO_PRECIP
from climscen.core.seasons import FALL_WINTER, SPRING_SUMMER, classify_days

logger = logging.getLogger(__name__)


def validate_drought_factor(drought_factor: float) -> float:
    f = float(drought_factor)
    if not np.isfinite(f) or f < 0.0 or f > 1.0:
        raise ValidationError(f"drought_factor must be between 0 and 1, got {drought_factor}")
    return f


def apply_drought_redistribution(
    shifted: pd.DataFrame,
    drought_factor: float,
    diagnostics: Optional[Diagnostics] = None,
    tol: float = MASS_BALANCE_TOLERANCE,
) -> ScenarioResult:
    """
    Seasonal drought: scale spring/summer (Mar-Aug) precipitation by ``drought_factor`` and move
    the removed amount to the wet fall/winter days (Sep-Feb) of the same season-year, in proportion
    to each day's share of the fall/winter total.

    ``shifted`` is the output of apply_delta_shift. Temperature columns pass through unchanged.
    The per-season-year mass balance is checked afterwards and stored in ``diagnostics.mass_balance``.
    """
    f = validate_drought_factor(drought_factor)
    diag = diagnostics if diagnostics is not None else Diagnostics()

    df = classify_days(shifted.sort_values("date").reset_index(drop=True), DELTA_PRECIP)
    p = df[DELTA_PRECIP].astype(float).to_numpy()
    scenario = p.copy()
    scaling = np.ones(len(df), dtype=float)

    rows: List[dict] = []
    for sy, g in df.groupby("season_year", sort=True):
        idx = g.index.to_numpy()
        ss = idx[(g["season"] == SPRING_SUMMER).to_numpy()]
        fw = idx[(g["season"] == FALL_WINTER).to_numpy()]
        fw_wet = fw[p[fw] > 0]

        ss_total = stable_sum(p[ss])
        fw_total = stable_sum(p[fw])
        amount = ss_total * (1.0 - f)

        # Spring/summer is scaled uniformly; the removed mass is exported to fall/winter below.
        scenario[ss] = p[ss] * f
        scaling[ss] = f

        redistributed = False
        if fw_total > 0 and amount > 0 and fw_wet.size > 0:
            added = amount * (p[fw_wet] / fw_total)
            scenario[fw_wet] = p[fw_wet] + added
            scaling[fw_wet] = scenario[fw_wet] / p[fw_wet]
            redistributed = True
        elif amount > 0:
            diag.warn(
                f"NO_FALL_WINTER_PRECIPITATION={int(sy)}",
                f"Season-year {int(sy)}: no fall/winter precipitation to receive {amount:.4f} removed from spring/summer.",
                records=int(ss.size),
            )

        shifted_total = stable_sum(p[idx])
        scenario_total = stable_sum(scenario[idx])
        err = mass_balance_error(scenario[idx], p[idx])
        rows.append({
            "season_year": int(sy),
            "spring_summer_total": ss_total,
            "fall_winter_total": fw_total,
            "amount_to_redistribute": amount,
            "shifted_total": shifted_total,
            "scenario_total": scenario_total,
            "mass_balance_error": err,
            "redistributed": redistributed,
            "balanced": bool(err <= tol),
        })

    mb = pd.DataFrame(rows, columns=[
        "season_year", "spring_summer_total", "fall_winter_total", "amount_to_redistribute",
        "shifted_total", "scenario_total", "mass_balance_error", "redistributed", "balanced",
    ])
    for r in rows:
        if not r["balanced"]:
            diag.warn(
                f"MASS_BALANCE_VIOLATION={r['season_year']}",
                f"Season-year {r['season_year']}: scenario total differs from shifted total by {r['mass_balance_error']:.6f}.",
            )
    diag.mass_balance = mb

    df[SCENARIO_PRECIP] = scenario
    df["scaling_factor"] = scaling

    extra = ["season", "season_year", "scaling_factor"]
    out = df[SCENARIO_COLUMNS + extra].copy()

    logger.info(
        "Drought redistribution (factor=%.3f): %d season-years, shifted total %.4f -> scenario total %.4f",
        f, len(mb), stable_sum(p), stable_sum(scenario),
    )
    return ScenarioResult(series=out, policy="drought", diagnostics=diag, settings={"drought_factor": f})
