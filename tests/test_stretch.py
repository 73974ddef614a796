from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from climscen.core.errors import ConvergenceWarning, DataIntegrityWarning, ValidationError
from climscen.scenarios.delta_change import apply_delta_shift
from climscen.scenarios.shift_table import MonthlyShiftTable
from climscen.scenarios.stretch import (
    StretchParameters,
    apply_stretch,
    calibrate_stretch,
    percentile_ranks,
    stretch_multipliers,
)


def _shifted(precip, start="2020-01-01"):
    daily = pd.DataFrame({
        "date": pd.date_range(start, periods=len(precip), freq="D"),
        "precipitation": precip,
        "temperature": [10.0] * len(precip),
    })
    shifted, _ = apply_delta_shift(daily, MonthlyShiftTable.zeros())
    return shifted


def test_percentile_ranks_midpoint_and_ties():
    z = percentile_ranks(np.array([0.0, 5.0, 5.0, 10.0, 20.0]))
    assert np.isnan(z[0])
    assert z[1:].tolist() == pytest.approx([37.5, 37.5, 62.5, 87.5])


def test_percentile_ranks_all_dry():
    assert np.isnan(percentile_ranks(np.zeros(3))).all()


def test_single_wet_record_converges():
    shifted = _shifted([100.0])
    res = calibrate_stretch(shifted, threshold=50, stretch_pct=0, tolerance=0.01, max_iterations=1000)
    s = res.series

    assert s["z_value"].iloc[0] == 50.0
    assert res.diagnostics.converged
    assert res.diagnostics.convergence_error <= 0.01
    assert s["scenario_precipitation"].iloc[0] == pytest.approx(100.0, rel=0.01)
    assert s["stretch_multiplier"].iloc[0] == pytest.approx(1.0, rel=0.01)
    assert all(v >= 0 for v in res.diagnostics.parameters.values())


def test_threshold_boundary_is_stretched():
    shifted = _shifted([1.0, 3.0])  # z = 25, 75
    s = apply_stretch(shifted, StretchParameters(), threshold=75, stretch_pct=0)
    assert s["z_value"].tolist() == pytest.approx([25.0, 75.0])
    assert s["stretch_multiplier"].iloc[0] == 1.0
    assert s["scenario_precipitation"].iloc[0] == 1.0
    assert s["stretch_multiplier"].iloc[1] != 1.0


def test_sigmoid_multiplier_formula():
    p = StretchParameters(a=2.0, b=0.5, c=1.5, d=0.3)
    m = stretch_multipliers(np.array([95.0]), p, threshold=90, stretch_pct=20)
    x = 0.5
    expected = 1.2 * (1 / (1 + np.exp(-2.0 * (x - 0.5)))) * 1.5 * np.exp(-0.3 * (1 - x))
    assert m[0] == pytest.approx(expected)


def test_power_multiplier_formula():
    p = StretchParameters(a=2.0, b=1.0, c=3.0, d=0.5)
    m = stretch_multipliers(np.array([45.0, 95.0]), p, threshold=90, stretch_pct=20, variant="power")
    assert m[0] == pytest.approx(3.0 * 0.5 ** 2 * 0.5 ** 1)
    assert m[1] == pytest.approx(1.2 * 0.5 ** 0.5)


def test_calibration_conserves_wet_day_mass(daily_series, shift_table):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    res = calibrate_stretch(shifted, threshold=90, stretch_pct=30, tolerance=0.01)
    s = res.series
    wet = s["delta_shift_precipitation"] > 0

    assert res.diagnostics.converged
    target = s.loc[wet, "delta_shift_precipitation"].sum()
    got = s.loc[wet, "scenario_precipitation"].sum()
    assert abs(got - target) / target <= 0.01
    assert res.diagnostics.convergence_error <= 0.01

    # below threshold: untouched
    below = wet & (s["z_value"] < 90)
    assert (s.loc[below, "stretch_multiplier"] == 1.0).all()
    assert np.array_equal(
        s.loc[below, "scenario_precipitation"].to_numpy(), s.loc[below, "delta_shift_precipitation"].to_numpy()
    )
    # dry days: exactly zero
    assert (s.loc[~wet, "scenario_precipitation"] == 0).all()


def test_calibration_is_deterministic(daily_series, shift_table):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    r1 = calibrate_stretch(shifted, threshold=80, stretch_pct=25)
    r2 = calibrate_stretch(shifted, threshold=80, stretch_pct=25)
    assert r1.diagnostics.parameters == r2.diagnostics.parameters
    pd.testing.assert_frame_equal(r1.series, r2.series)


def test_power_variant_parameters_non_negative(daily_series, shift_table):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    res = calibrate_stretch(shifted, threshold=90, stretch_pct=30, variant="power")
    assert all(v >= 0 for v in res.diagnostics.parameters.values())
    if res.diagnostics.converged:
        assert res.diagnostics.convergence_error <= 0.01
    s = res.series
    assert (s.loc[s["delta_shift_precipitation"] == 0, "scenario_precipitation"] == 0).all()


def test_non_convergence_is_reported(daily_series, shift_table):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    with pytest.warns(ConvergenceWarning, match="Convergence tolerance not met"):
        res = calibrate_stretch(shifted, threshold=90, stretch_pct=50, tolerance=1e-9, max_iterations=1)

    assert not res.diagnostics.converged
    assert res.diagnostics.convergence_error > 1e-9
    assert "CONVERGENCE_NOT_ACHIEVED" in res.diagnostics.codes
    assert len(res.series) == len(shifted)


def test_no_wet_days():
    shifted = _shifted([0.0, 0.0, 0.0])
    with pytest.warns(DataIntegrityWarning):
        res = calibrate_stretch(shifted, threshold=50, stretch_pct=10)
    assert res.diagnostics.convergence_error == 0.0
    assert (res.series["scenario_precipitation"] == 0).all()
    assert res.diagnostics.codes == ["NO_WET_DAYS"]


@pytest.mark.parametrize("threshold,stretch", [(-1, 10), (100.5, 10), (50, -0.1)])
def test_invalid_parameters(threshold, stretch):
    with pytest.raises(ValidationError):
        calibrate_stretch(_shifted([1.0, 2.0]), threshold=threshold, stretch_pct=stretch)


def test_unknown_variant():
    with pytest.raises(ValidationError, match="variant"):
        calibrate_stretch(_shifted([1.0, 2.0]), threshold=50, stretch_pct=0, variant="cubic")


@pytest.mark.parametrize("variant", ["sigmoid", "power"])
@pytest.mark.parametrize("threshold", [0, 100])
def test_threshold_edges(daily_series, shift_table, threshold, variant):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    res = calibrate_stretch(shifted, threshold=threshold, stretch_pct=20, variant=variant)
    s = res.series
    wet = s["delta_shift_precipitation"] > 0

    assert np.isfinite(s.loc[wet, "stretch_multiplier"]).all()
    assert np.isfinite(s["scenario_precipitation"]).all()
    assert (s.loc[~wet, "scenario_precipitation"] == 0).all()
    assert res.diagnostics.convergence_error is not None
    assert np.isfinite(res.diagnostics.convergence_error)
    assert res.diagnostics.converged == (res.diagnostics.convergence_error <= 0.01)


def test_sigmoid_threshold_100_leaves_series_unchanged(daily_series, shift_table):
    shifted, _ = apply_delta_shift(daily_series, shift_table, strict=True)
    res = calibrate_stretch(shifted, threshold=100, stretch_pct=20)
    s = res.series

    assert res.diagnostics.convergence_error == 0.0
    assert res.diagnostics.iterations == 0
    assert np.array_equal(s["scenario_precipitation"].to_numpy(), s["delta_shift_precipitation"].to_numpy())


def test_power_threshold_zero_has_no_lower_branch():
    z = np.array([10.0, 50.0, 90.0])
    m = stretch_multipliers(z, StretchParameters(a=1.0, b=1.0, c=1.0, d=2.0), threshold=0, stretch_pct=0, variant="power")
    assert m.tolist() == pytest.approx([0.01, 0.25, 0.81])
