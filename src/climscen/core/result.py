from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

import pandas as pd

from climscen.core.errors import DataIntegrityWarning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Issue:
    code: str
    message: str
    category: Type[Warning] = DataIntegrityWarning
    records: int = 0  # rows the issue applies to


@dataclass
class Diagnostics:
    """
    Non-fatal findings collected while building a scenario.

    Issues are kept as upper-case codes (``"MISSING_MONTH_SHIFT=7"``) plus a readable message,
    and are also emitted through :mod:`warnings` so callers can filter or escalate them.
    """
    issues: List[Issue] = field(default_factory=list)

    # drought mode: one row per season-year
    mass_balance: Optional[pd.DataFrame] = None

    # stretch mode
    parameters: Optional[Dict[str, float]] = None
    convergence_error: Optional[float] = None
    converged: Optional[bool] = None
    iterations: Optional[int] = None

    unmatched_records: int = 0

    def warn(
        self,
        code: str,
        message: str,
        category: Type[Warning] = DataIntegrityWarning,
        records: int = 0,
    ) -> None:
        self.issues.append(Issue(code=code, message=message, category=category, records=int(records)))
        logger.warning("%s: %s", code, message)
        warnings.warn(message, category, stacklevel=3)

    @property
    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    @property
    def warned_records(self) -> int:
        return sum(i.records for i in self.issues)

    def has(self, prefix: str) -> bool:
        return any(c.split("=")[0] == prefix for c in self.codes)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "warnings": self.codes,
            "unmatched_records": int(self.unmatched_records),
            "warned_records": self.warned_records,
        }
        if self.mass_balance is not None:
            out["mass_balance"] = self.mass_balance.to_dict(orient="records")
        if self.parameters is not None:
            out["parameters"] = dict(self.parameters)
            out["convergence_error"] = self.convergence_error
            out["converged"] = self.converged
        return out


@dataclass(frozen=True)
class ScenarioResult:
    """
    Output of a daily scenario transform.

    ``series`` holds the canonical scenario columns (see ``climscen.core.schema.SCENARIO_COLUMNS``)
    plus the policy's audit columns.
    """
    series: pd.DataFrame
    policy: str  # "drought" | "stretch" | "subdaily"
    diagnostics: Diagnostics = field(default_factory=Diagnostics)
    settings: Dict[str, Any] = field(default_factory=dict)
