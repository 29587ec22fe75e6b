# lever.py
"""
Policy levers and SMR targets applied to baseline input matrices.
"""
import json
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

import numpy as np

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.helpers.common_functions import active_years


@dataclass(frozen=True)
class Lever:
    """
    Cumulative policy level: 1 full diagnosis, 2 + basic care, 3 + best care,
    4 + cure. Level 0 leaves the inputs untouched. The lever is active for
    start_year..end_year inclusive; end_year None means the last modeled year.
    """

    level: int = 0
    start_year: int = c.PROJECTION_START_YEAR
    end_year: Optional[int] = None

    def __post_init__(self):
        self._validate_inputs()

    @property
    def is_noop(self) -> bool:
        return self.level == 0

    @property
    def name(self) -> str:
        return c.LEVER_NAMES[self.level]

    def year_range(self, years: np.ndarray) -> np.ndarray:
        """Years of `years` the lever is active in."""
        return active_years(years, self.start_year, self.end_year)

    def __str__(self) -> str:
        if self.is_noop:
            return self.name
        end = "" if self.end_year is None else f"-{self.end_year}"
        return f"{self.level} {self.name} @ {self.start_year}{end}"

    def _validate_inputs(self):
        errs = []
        if self.level not in c.LEVER_NAMES:
            errs.append(f"Unsupported lever level: {self.level}")
        if self.end_year is not None and self.end_year < self.start_year:
            errs.append(f"end_year {self.end_year} before start_year {self.start_year}")
        if errs:
            raise ValueError("\n".join(errs))


@dataclass(frozen=True)
class SmrTarget:
    low: float
    high: float
    start_year: int = c.PROJECTION_START_YEAR
    end_year: Optional[int] = None

    def __post_init__(self):
        if not (0 < self.low <= self.high):
            raise ValueError(f"Invalid SMR band: [{self.low}, {self.high}]")

    @property
    def midpoint(self) -> float:
        return (self.low + self.high) / 2.0

    def year_range(self, years: np.ndarray) -> np.ndarray:
        return active_years(years, self.start_year, self.end_year)

    def __str__(self) -> str:
        return f"SMR {self.low}-{self.high} @ {self.start_year}"


# ---------- JSON loading  ----------
def _from_json_item(s: Dict[str, Any]) -> Lever:
    return Lever(
        level=int(s.get("level", 0)),
        start_year=int(s.get("start_year", c.PROJECTION_START_YEAR)),
        end_year=s.get("end_year"),
    )


def load_levers(path: str | Path) -> List[Lever]:
    data = json.loads(Path(path).read_text())
    items = data.get("levers", data) if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ValueError("Invalid JSON: expected a list or a 'levers' list.")
    return [_from_json_item(s) for s in items]
