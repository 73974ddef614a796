from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from climscen.core.errors import ConfigurationError, ValidationError
from climscen.core.schema import SHIFTS

MONTHS: Tuple[int, ...] = tuple(range(1, 13))


@dataclass(frozen=True)
class MonthlyShift:
    month: int
    precip_pct_change: float = 0.0  # e.g. -20.0 means wet-day precipitation x 0.8
    temp_offset: float = 0.0  # additive, degC

    def __post_init__(self) -> None:
        if not math.isfinite(self.precip_pct_change) or self.precip_pct_change < -100.0:
            raise ValidationError(
                f"precip_pct_change for month {self.month} must be a finite value >= -100, got {self.precip_pct_change}"
            )
        if not math.isfinite(self.temp_offset):
            raise ValidationError(f"temp_offset for month {self.month} must be finite, got {self.temp_offset}")

    @property
    def precip_multiplier(self) -> float:
        return (100.0 + float(self.precip_pct_change)) / 100.0


@dataclass(frozen=True)
class MonthlyShiftTable:
    """
    Month (1..12) -> MonthlyShift.

    A strict table (the default) must hold exactly one entry per calendar month; anything else
    raises ValidationError. ``strict=False`` allows partial tables, whose missing months are
    treated as no change by the delta shift.
    """
    shifts: Mapping[int, MonthlyShift] = field(default_factory=dict)
    strict: bool = True

    def __post_init__(self) -> None:
        for m, s in self.shifts.items():
            if int(m) not in MONTHS:
                raise ValidationError(f"Invalid month in shift table: {m}. Valid: 1..12")
            if int(s.month) != int(m):
                raise ValidationError(f"Shift table key {m} does not match entry month {s.month}")
        if self.strict and not self.is_complete:
            raise ValidationError(
                f"Monthly shift table must contain exactly one entry for each month 1-12; missing {self.missing_months}"
            )

    @property
    def is_complete(self) -> bool:
        return not self.missing_months

    @property
    def missing_months(self) -> List[int]:
        return [m for m in MONTHS if m not in self.shifts]

    def get(self, month: int) -> Optional[MonthlyShift]:
        return self.shifts.get(int(month))

    def __getitem__(self, month: int) -> MonthlyShift:
        return self.shifts[int(month)]

    def __len__(self) -> int:
        return len(self.shifts)

    def __iter__(self) -> Iterator[MonthlyShift]:
        return iter(self.shifts[m] for m in sorted(self.shifts))

    @classmethod
    def from_frame(cls, df: pd.DataFrame, strict: bool = True) -> "MonthlyShiftTable":
        """
        Build from a frame with columns month, precip_pct_change, temp_offset.
        Duplicate months are always rejected.
        """
        required = [SHIFTS.month, SHIFTS.precip_pct_change, SHIFTS.temp_offset]
        missing = [c for c in required if c not in df.columns]
        if missing:
            raise ConfigurationError(f"Shift table missing columns: {missing}")

        months = pd.to_numeric(df[SHIFTS.month], errors="coerce")
        if months.isna().any():
            raise ConfigurationError("Shift table contains non-numeric months.")
        dup = months[months.duplicated()].astype(int).tolist()
        if dup:
            raise ValidationError(f"Shift table has duplicate months: {sorted(set(dup))}")
        if strict and len(df) != 12:
            raise ValidationError(f"Shift table must contain exactly 12 rows with months 1-12, got {len(df)}")

        shifts: Dict[int, MonthlyShift] = {}
        for m, pct, toff in zip(months.astype(int), df[SHIFTS.precip_pct_change], df[SHIFTS.temp_offset]):
            shifts[int(m)] = MonthlyShift(month=int(m), precip_pct_change=float(pct), temp_offset=float(toff))
        return cls(shifts=shifts, strict=strict)

    @classmethod
    def from_lists(cls, precip_pct_change: Sequence[float], temp_offset: Sequence[float]) -> "MonthlyShiftTable":
        """Twelve values each, January first."""
        if len(precip_pct_change) != 12 or len(temp_offset) != 12:
            raise ValidationError("precip_pct_change and temp_offset must have 12 values (Jan..Dec).")
        return cls(
            shifts={
                m: MonthlyShift(month=m, precip_pct_change=float(p), temp_offset=float(t))
                for m, p, t in zip(MONTHS, precip_pct_change, temp_offset)
            }
        )

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[int, Tuple[float, float]], strict: bool = True
    ) -> "MonthlyShiftTable":
        """{month: (precip_pct_change, temp_offset)}"""
        return cls(
            shifts={int(m): MonthlyShift(month=int(m), precip_pct_change=float(p), temp_offset=float(t)) for m, (p, t) in mapping.items()},
            strict=strict,
        )

    @classmethod
    def zeros(cls) -> "MonthlyShiftTable":
        return cls.from_lists([0.0] * 12, [0.0] * 12)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {SHIFTS.month: s.month, SHIFTS.precip_pct_change: s.precip_pct_change, SHIFTS.temp_offset: s.temp_offset}
                for s in self
            ],
            columns=[SHIFTS.month, SHIFTS.precip_pct_change, SHIFTS.temp_offset],
        )
