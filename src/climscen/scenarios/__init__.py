"""
Scenario transforms: monthly delta shift, seasonal drought redistribution, percentile stretch, subdaily propagation.
"""

from .shift_table import MonthlyShift, MonthlyShiftTable  # noqa: F401
from .scenario_deltas import SCENARIO_DELTAS, preset_shift_table  # noqa: F401
from .delta_change import apply_delta_shift  # noqa: F401
from .drought import apply_drought_redistribution  # noqa: F401
from .stretch import StretchParameters, apply_stretch, calibrate_stretch, percentile_ranks  # noqa: F401
from .subdaily import propagate_to_subdaily  # noqa: F401
