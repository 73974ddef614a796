from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import pandas as pd

from climscen.core.result import Diagnostics, ScenarioResult
from climscen.io.validators import normalize_daily, normalize_subdaily
from climscen.scenarios.delta_change import ShiftsLike, apply_delta_shift
from climscen.scenarios.drought import apply_drought_redistribution, validate_drought_factor
from climscen.scenarios.stretch import StretchVariant, calibrate_stretch, validate_stretch_inputs
from climscen.scenarios.subdaily import propagate_to_subdaily

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroughtConfig:
    # fraction of spring/summer precipitation retained
    drought_factor: float = 0.75


@dataclass(frozen=True)
class StretchConfig:
    threshold: float = 95.0  # percentile, 0..100
    stretch_pct: float = 50.0  # % amplification of the top of the distribution
    tolerance: float = 0.01  # relative error on the wet-day total
    max_iterations: int = 1000
    variant: StretchVariant = "sigmoid"


def run_drought_scenario(
    daily: pd.DataFrame,
    shifts: ShiftsLike,
    cfg: DroughtConfig = DroughtConfig(),
) -> ScenarioResult:
    """
    Daily series -> delta shift (strict 12-month table) -> seasonal drought redistribution.
    Parameters are validated before any data is touched.
    """
    validate_drought_factor(cfg.drought_factor)
    diag = Diagnostics()
    clean = normalize_daily(daily, diag)
    shifted, diag = apply_delta_shift(clean, shifts, strict=True, diagnostics=diag)
    result = apply_drought_redistribution(shifted, cfg.drought_factor, diagnostics=diag)
    logger.info("Drought scenario done: %d days, warnings=%s", len(result.series), result.diagnostics.codes or "none")
    return result


def run_stretch_scenario(
    daily: pd.DataFrame,
    shifts: ShiftsLike,
    cfg: StretchConfig = StretchConfig(),
) -> ScenarioResult:
    """Daily series -> delta shift (strict 12-month table) -> calibrated percentile stretch."""
    validate_stretch_inputs(cfg.threshold, cfg.stretch_pct, cfg.variant)
    diag = Diagnostics()
    clean = normalize_daily(daily, diag)
    shifted, diag = apply_delta_shift(clean, shifts, strict=True, diagnostics=diag)
    result = calibrate_stretch(
        shifted,
        threshold=cfg.threshold,
        stretch_pct=cfg.stretch_pct,
        tolerance=cfg.tolerance,
        max_iterations=cfg.max_iterations,
        variant=cfg.variant,
        diagnostics=diag,
    )
    logger.info(
        "Stretch scenario done: %d days, converged=%s, error=%.6f",
        len(result.series), result.diagnostics.converged, result.diagnostics.convergence_error,
    )
    return result


def run_subdaily_scenario(
    subdaily: pd.DataFrame,
    scenario: Union[ScenarioResult, pd.DataFrame],
    diagnostics: Optional[Diagnostics] = None,
) -> ScenarioResult:
    """Propagate an existing daily scenario (fresh result or prior table) to a subdaily series."""
    diag = diagnostics if diagnostics is not None else Diagnostics()
    clean = normalize_subdaily(subdaily, diag)
    return propagate_to_subdaily(clean, scenario, diagnostics=diag)
