from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Literal, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.optimize import minimize
from scipy.special import expit

from climscen.core.errors import ConvergenceWarning, ValidationError
from climscen.core.metrics import relative_error, stable_sum
from climscen.core.result import Diagnostics, ScenarioResult
from climscen.core.schema import DELTA_PRECIP, SCENARIO_COLUMNS, SCENARIO_PRECIP

logger = logging.getLogger(__name__)

StretchVariant = Literal["sigmoid", "power"]
VARIANTS: Tuple[str, ...] = ("sigmoid", "power")

INITIAL_GUESS: Tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)


@dataclass(frozen=True)
class StretchParameters:
    a: float = 1.0
    b: float = 1.0
    c: float = 1.0
    d: float = 1.0

    @classmethod
    def from_vector(cls, v: Sequence[float]) -> "StretchParameters":
        # the search runs over all reals; the stretch function only ever sees magnitudes
        a, b, c, d = (abs(float(x)) for x in v)
        return cls(a=a, b=b, c=c, d=d)

    def to_vector(self) -> np.ndarray:
        return np.array([self.a, self.b, self.c, self.d], dtype=float)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def validate_stretch_inputs(threshold: float, stretch_pct: float, variant: str = "sigmoid") -> None:
    if not np.isfinite(threshold) or threshold < 0 or threshold > 100:
        raise ValidationError(f"Threshold must be between 0 and 100, got {threshold}")
    if not np.isfinite(stretch_pct) or stretch_pct < 0:
        raise ValidationError(f"Stretch factor must be >= 0, got {stretch_pct}")
    if variant not in VARIANTS:
        raise ValidationError(f"Unknown stretch variant: {variant}. Valid: {list(VARIANTS)}")


def percentile_ranks(precip: np.ndarray) -> np.ndarray:
    """
    Mid-point empirical CDF of the wet values, in percent.

    For each wet value v: z(v) = (count(wet <= v) - 0.5) / n * 100, n = number of wet values.
    Tied values share the same z. Dry entries (<= 0) get NaN.
    """
    p = np.asarray(precip, dtype=float)
    z = np.full(p.shape, np.nan, dtype=float)
    wet = p > 0
    n = int(wet.sum())
    if n == 0:
        return z
    sorted_wet = np.sort(p[wet], kind="mergesort")
    count_le = np.searchsorted(sorted_wet, p[wet], side="right")
    z[wet] = (count_le - 0.5) / n * 100.0
    return z


def stretch_multipliers(
    z: np.ndarray,
    params: StretchParameters,
    threshold: float,
    stretch_pct: float,
    variant: StretchVariant = "sigmoid",
) -> np.ndarray:
    """
    Multiplier applied to each wet value given its percentile rank ``z``.

    sigmoid: above threshold (z >= t), x = (z - t) / (100 - t),
             m = (100 + s)/100 * sigmoid(a (x - b)) * c * exp(-d (1 - x)); below threshold m = 1.
    power:   above threshold m = (100 + s)/100 * x**d; below threshold x = z / t, m = c * x**a * (1 - x)**b.
    """
    z = np.asarray(z, dtype=float)
    a, b, c, d = params.a, params.b, params.c, params.d
    scale = (100.0 + stretch_pct) / 100.0
    above = z >= threshold

    x_hi = (z - threshold) / (100.0 - threshold) if threshold < 100 else np.zeros_like(z)
    m = np.ones_like(z)

    if variant == "sigmoid":
        m[above] = scale * expit(a * (x_hi[above] - b)) * (c * np.exp(-d * (1.0 - x_hi[above])))
    elif variant == "power":
        m[above] = scale * np.power(x_hi[above], d)
        below = ~above
        x_lo = z[below] / threshold if threshold > 0 else np.zeros(int(below.sum()))
        m[below] = c * np.power(x_lo, a) * np.power(1.0 - x_lo, b)
    else:
        raise ValidationError(f"Unknown stretch variant: {variant}. Valid: {list(VARIANTS)}")
    return m


def apply_stretch(
    shifted: pd.DataFrame,
    params: StretchParameters,
    threshold: float,
    stretch_pct: float,
    variant: StretchVariant = "sigmoid",
) -> pd.DataFrame:
    """Evaluate the stretch for fixed parameters. Dry days pass through with multiplier 0 and no z."""
    validate_stretch_inputs(threshold, stretch_pct, variant)
    df = shifted.sort_values("date").reset_index(drop=True).copy()
    p = df[DELTA_PRECIP].astype(float).to_numpy()
    wet = p > 0

    z = percentile_ranks(p)
    mult = np.zeros(len(df), dtype=float)
    mult[wet] = stretch_multipliers(z[wet], params, threshold, stretch_pct, variant)

    df[SCENARIO_PRECIP] = np.where(wet, p * mult, p)
    df["z_value"] = z
    df["stretch_multiplier"] = mult
    return df[SCENARIO_COLUMNS + ["z_value", "stretch_multiplier"]]


def calibrate_stretch(
    shifted: pd.DataFrame,
    threshold: float,
    stretch_pct: float,
    tolerance: float = 0.01,
    max_iterations: int = 1000,
    variant: StretchVariant = "sigmoid",
    initial_guess: Sequence[float] = INITIAL_GUESS,
    diagnostics: Optional[Diagnostics] = None,
) -> ScenarioResult:
    """
    Stretch the wet-day distribution above a percentile threshold and calibrate (a, b, c, d) so the
    stretched wet-day total matches the delta-shifted wet-day total.

    Objective: |sum(stretched) - target| / target, minimized with Nelder-Mead from ``initial_guess``.
    The search stops when the objective is within ``tolerance`` (absolute), when the simplex
    has collapsed to ``tolerance`` in both parameters and objective (relative progress), or after
    ``max_iterations``. A result outside tolerance is still returned, with a ConvergenceWarning.
    """
    validate_stretch_inputs(threshold, stretch_pct, variant)
    if tolerance <= 0:
        raise ValidationError(f"tolerance must be > 0, got {tolerance}")
    if int(max_iterations) < 1:
        raise ValidationError(f"max_iterations must be >= 1, got {max_iterations}")
    diag = diagnostics if diagnostics is not None else Diagnostics()

    df = shifted.sort_values("date").reset_index(drop=True)
    p = df[DELTA_PRECIP].astype(float).to_numpy()
    wet = p > 0
    p_wet = p[wet]
    target = stable_sum(p_wet)

    settings = {
        "threshold": float(threshold),
        "stretch_pct": float(stretch_pct),
        "tolerance": float(tolerance),
        "max_iterations": int(max_iterations),
        "variant": variant,
    }

    if target == 0:
        params = StretchParameters.from_vector(initial_guess)
        diag.warn("NO_WET_DAYS", "No wet days in the delta-shifted series; nothing to stretch.")
        diag.parameters = params.to_dict()
        diag.convergence_error = 0.0
        diag.converged = True
        diag.iterations = 0
        out = apply_stretch(df, params, threshold, stretch_pct, variant)
        return ScenarioResult(series=out, policy="stretch", diagnostics=diag, settings=settings)

    # ranks do not depend on the parameters
    z_wet = percentile_ranks(p)[wet]

    def objective(v: np.ndarray) -> float:
        m = stretch_multipliers(z_wet, StretchParameters.from_vector(v), threshold, stretch_pct, variant)
        return relative_error(stable_sum(p_wet * m), target)

    def stop_within_tolerance(intermediate_result) -> None:
        if intermediate_result.fun <= tolerance:
            raise StopIteration

    logger.info("Calibrating %s stretch: threshold=%.2f, stretch=%.2f%%, target sum=%.4f", variant, threshold, stretch_pct, target)
    x0 = np.asarray(initial_guess, dtype=float)
    if objective(x0) <= tolerance:
        best, nit = x0, 0
    else:
        res = minimize(
            objective,
            x0,
            method="Nelder-Mead",
            callback=stop_within_tolerance,
            options={"maxiter": int(max_iterations), "xatol": tolerance, "fatol": tolerance},
        )
        best, nit = res.x, int(res.nit)

    params = StretchParameters.from_vector(best)
    out = apply_stretch(df, params, threshold, stretch_pct, variant)
    final_sum = stable_sum(out.loc[wet, SCENARIO_PRECIP].to_numpy())
    error = relative_error(final_sum, target)

    diag.parameters = params.to_dict()
    diag.convergence_error = error
    diag.converged = bool(error <= tolerance)
    diag.iterations = nit

    if not diag.converged:
        diag.warn(
            "CONVERGENCE_NOT_ACHIEVED",
            f"Convergence tolerance not met after {nit} iterations. Error: {error * 100:.4f}%",
            category=ConvergenceWarning,
        )
    else:
        logger.info("Calibration converged in %d iterations, relative error %.6f", nit, error)

    return ScenarioResult(series=out, policy="stretch", diagnostics=diag, settings=settings)
