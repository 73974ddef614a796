from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class DailySchema:
    date: str = "date"
    precipitation: str = "precipitation"
    temperature: str = "temperature"


@dataclass(frozen=True)
class SubdailySchema:
    timestamp: str = "timestamp"
    precipitation: str = "precipitation"
    temperature: str = "temperature"


@dataclass(frozen=True)
class ShiftSchema:
    month: str = "month"
    precip_pct_change: str = "precip_pct_change"
    temp_offset: str = "temp_offset"


DAILY = DailySchema()
SUBDAILY = SubdailySchema()
SHIFTS = ShiftSchema()

# Output columns shared by both policies (drought and stretch) and by the subdaily propagation.
ORIGINAL_PRECIP = "original_precipitation"
DELTA_PRECIP = "delta_shift_precipitation"
ORIGINAL_TEMP = "original_temperature"
DELTA_TEMP = "delta_shift_temperature"
SCENARIO_PRECIP = "scenario_precipitation"

SCENARIO_COLUMNS: List[str] = [
    "date",
    ORIGINAL_PRECIP,
    DELTA_PRECIP,
    ORIGINAL_TEMP,
    DELTA_TEMP,
    SCENARIO_PRECIP,
]

SUBDAILY_COLUMNS: List[str] = [
    "timestamp",
    "date",
    ORIGINAL_PRECIP,
    DELTA_PRECIP,
    ORIGINAL_TEMP,
    DELTA_TEMP,
    SCENARIO_PRECIP,
    "matched",
]
