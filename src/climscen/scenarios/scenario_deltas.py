from __future__ import annotations

from typing import Dict, List

from climscen.core.errors import ConfigurationError
from climscen.scenarios.shift_table import MonthlyShiftTable

# Monthly delta shifts by preset name.
# Convention:
# - precip_pct_change: percent change on wet-day precipitation (e.g., -10.0 means -10%)
# - temp_offset: additive delta on temperature in degC (e.g., +1.0 means +1 degC)
SCENARIO_DELTAS: Dict[str, Dict[str, List[float]]] = {
    "Base": {
        "precip_pct_change": [0.0] * 12,
        "temp_offset": [0.0] * 12,
    },
    "Favorable": {
        "precip_pct_change": [5.0] * 12,
        "temp_offset": [-0.2] * 12,
    },
    "Unfavorable": {
        "precip_pct_change": [-10.0] * 12,
        "temp_offset": [0.8] * 12,
    },
}


def preset_shift_table(name: str) -> MonthlyShiftTable:
    if name not in SCENARIO_DELTAS:
        raise ConfigurationError(f"Unknown scenario: {name}. Valid: {list(SCENARIO_DELTAS.keys())}")
    d = SCENARIO_DELTAS[name]
    return MonthlyShiftTable.from_lists(d["precip_pct_change"], d["temp_offset"])
