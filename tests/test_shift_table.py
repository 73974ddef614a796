from __future__ import annotations

import pandas as pd
import pytest

from climscen.core.errors import ConfigurationError, ValidationError
from climscen.scenarios.scenario_deltas import SCENARIO_DELTAS, preset_shift_table
from climscen.scenarios.shift_table import MonthlyShift, MonthlyShiftTable


def test_complete_table_from_lists(shift_table):
    assert len(shift_table) == 12
    assert shift_table.is_complete
    assert shift_table[7].precip_pct_change == -20
    assert shift_table[7].precip_multiplier == pytest.approx(0.8)
    assert [s.month for s in shift_table] == list(range(1, 13))


def test_missing_month_fails_fast():
    mapping = {m: (0.0, 0.0) for m in range(1, 13) if m != 4}
    with pytest.raises(ConfigurationError, match=r"missing \[4\]"):
        MonthlyShiftTable.from_mapping(mapping)


def test_partial_table_allowed_when_not_strict():
    t = MonthlyShiftTable.from_mapping({6: (-20.0, 2.0)}, strict=False)
    assert not t.is_complete
    assert t.get(6) == MonthlyShift(month=6, precip_pct_change=-20.0, temp_offset=2.0)
    assert t.get(1) is None
    assert 1 in t.missing_months and 6 not in t.missing_months


def test_from_frame_validation():
    df = pd.DataFrame({"month": range(1, 13), "precip_pct_change": [0.0] * 12, "temp_offset": [0.5] * 12})
    t = MonthlyShiftTable.from_frame(df)
    assert t[12].temp_offset == 0.5

    with pytest.raises(ConfigurationError, match="exactly 12 rows"):
        MonthlyShiftTable.from_frame(df.iloc[:11])

    dup = df.copy()
    dup.loc[11, "month"] = 11
    with pytest.raises(ConfigurationError, match="duplicate months"):
        MonthlyShiftTable.from_frame(dup)

    with pytest.raises(ConfigurationError, match="missing columns"):
        MonthlyShiftTable.from_frame(df.drop(columns=["temp_offset"]))


def test_invalid_month_rejected():
    with pytest.raises(ConfigurationError, match="Invalid month"):
        MonthlyShiftTable.from_mapping({13: (0.0, 0.0)}, strict=False)


def test_to_frame_roundtrip(shift_table):
    again = MonthlyShiftTable.from_frame(shift_table.to_frame())
    assert again == shift_table


def test_presets():
    assert set(SCENARIO_DELTAS) == {"Base", "Favorable", "Unfavorable"}
    t = preset_shift_table("Unfavorable")
    assert t[3].precip_multiplier == pytest.approx(0.9)
    assert t[3].temp_offset == pytest.approx(0.8)
    with pytest.raises(ConfigurationError, match="Unknown scenario"):
        preset_shift_table("Apocalyptic")


@pytest.mark.parametrize("pct", [-150.0, -100.01, float("nan"), float("inf")])
def test_precip_change_below_total_loss_rejected(pct):
    with pytest.raises(ValidationError, match="precip_pct_change"):
        MonthlyShiftTable.from_lists([pct] * 12, [0.0] * 12)


def test_total_loss_is_allowed():
    t = MonthlyShiftTable.from_lists([-100.0] * 12, [0.0] * 12)
    assert t[1].precip_multiplier == 0.0


def test_non_finite_temperature_offset_rejected():
    with pytest.raises(ValidationError, match="temp_offset"):
        MonthlyShift(month=3, temp_offset=float("nan"))


def test_incomplete_or_duplicated_tables_are_validation_errors():
    with pytest.raises(ValidationError, match="missing"):
        MonthlyShiftTable.from_mapping({1: (0.0, 0.0)})

    df = pd.DataFrame({"month": [1, 1], "precip_pct_change": [0.0, 0.0], "temp_offset": [0.0, 0.0]})
    with pytest.raises(ValidationError, match="duplicate months"):
        MonthlyShiftTable.from_frame(df, strict=False)
