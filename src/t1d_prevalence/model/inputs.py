from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

import numpy as np

from t1d_prevalence.helpers.common_functions import (
    check_matrix,
    check_years,
    mortality_from_smr,
)

RATE_FIELDS = ("i", "qB", "dDx", "smr_n", "smr_m", "percent_n")


@dataclass(frozen=True)
class InputMatrices:
    """
    Year x age input rates for one country/run, all shaped (len(years), MAX_AGE).

    i:          observed incidence (excludes deaths on diagnosis), annual probability
    qB:         background mortality from life tables
    dDx:        death-on-diagnosis rate
    smr_n:      SMR for the non-minimal-care stratum
    smr_m:      SMR for the minimal-care stratum
    percent_n:  share of the prevalent population in non-minimal care
    pop:        background population (persons), optional
    """

    i: np.ndarray
    qB: np.ndarray
    dDx: np.ndarray
    smr_n: np.ndarray
    smr_m: np.ndarray
    percent_n: np.ndarray
    years: np.ndarray
    pop: Optional[np.ndarray] = field(default=None)
    country: Optional[str] = None

    def __post_init__(self):
        years = check_years(self.years, min_length=1)
        object.__setattr__(self, "years", years)
        for name in RATE_FIELDS:
            m = check_matrix(name, getattr(self, name), len(years))
            m.setflags(write=False)
            object.__setattr__(self, name, m)
        if self.pop is not None:
            pop = check_matrix("pop", self.pop, len(years))
            pop.setflags(write=False)
            object.__setattr__(self, "pop", pop)

    @property
    def n_years(self) -> int:
        return len(self.years)

    @property
    def qT1D_n(self) -> np.ndarray:
        return mortality_from_smr(self.qB, self.smr_n)

    @property
    def qT1D_m(self) -> np.ndarray:
        return mortality_from_smr(self.qB, self.smr_m)

    def t1d_mortality(self) -> Tuple[np.ndarray, np.ndarray]:
        """(qT1D_n, qT1D_m) derived from background mortality and SMRs."""
        return self.qT1D_n, self.qT1D_m

    def blended_mortality(self) -> np.ndarray:
        """Disease mortality of the prevalent pool, strata mixed by percent_n."""
        qn, qm = self.t1d_mortality()
        return qn * self.percent_n + qm * (1 - self.percent_n)

    def row(self, year: int) -> int:
        idx = np.flatnonzero(self.years == year)
        if len(idx) == 0:
            raise KeyError(f"{year} not in {self.years[0]}..{self.years[-1]}")
        return int(idx[0])

    def with_updates(self, **changes) -> "InputMatrices":
        """Copy with some matrices replaced; the original is left untouched."""
        return replace(self, **changes)

    def __str__(self) -> str:
        label = self.country or "inputs"
        return f"{label} {self.years[0]}-{self.years[-1]}"
