from __future__ import annotations

import math
from typing import Iterable

import numpy as np

# Absolute tolerance for per-group precipitation mass balance (same units as the series, e.g. mm).
MASS_BALANCE_TOLERANCE = 1e-3


def stable_sum(values: Iterable[float]) -> float:
    """
    Order-stable, compensated sum.
    Callers pass values already sorted by date so repeated runs reduce in the same order.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(math.fsum(arr.tolist()))


def relative_error(value: float, target: float) -> float:
    """|value - target| / target. Returns NaN when the target is zero."""
    if target == 0:
        return float("nan")
    return float(abs(value - target) / target)


def mass_balance_error(scenario: np.ndarray, baseline: np.ndarray) -> float:
    """Absolute difference between scenario and baseline totals."""
    return float(abs(stable_sum(scenario) - stable_sum(baseline)))
