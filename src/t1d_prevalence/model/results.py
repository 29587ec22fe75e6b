from dataclasses import dataclass
from typing import Literal, Optional

import numpy as np


def _freeze(*arrays) -> None:
    for a in arrays:
        if a is not None:
            a.setflags(write=False)


@dataclass(frozen=True)
class PrevalenceResult:
    """
    Output of the full illness-death engine, as proportions of a birth cohort.

    Compartments (after half-cycle adjustment): S, P, D.
    Flows: I (incidence), DDx (deaths at onset), DT1D (excess T1D deaths),
    DBGP / DBGS (background deaths of prevalent / susceptible).
    Pcohorts, Icohorts, PDcohorts are year x age x onset age, or None when
    cohort tracking was off.
    """

    S: np.ndarray
    P: np.ndarray
    D: np.ndarray
    I: np.ndarray
    DDx: np.ndarray
    DT1D: np.ndarray
    DBGP: np.ndarray
    DBGS: np.ndarray
    years: np.ndarray
    Pcohorts: Optional[np.ndarray] = None
    Icohorts: Optional[np.ndarray] = None
    PDcohorts: Optional[np.ndarray] = None
    country: Optional[str] = None
    elapsed: float = 0.0
    kind: Literal["prevalence"] = "prevalence"

    def __post_init__(self):
        _freeze(
            self.S, self.P, self.D, self.I, self.DDx, self.DT1D, self.DBGP,
            self.DBGS, self.Pcohorts, self.Icohorts, self.PDcohorts,
        )

    @property
    def has_cohorts(self) -> bool:
        return self.Pcohorts is not None

    @property
    def P_cohorts_level(self) -> Optional[np.ndarray]:
        return self.Pcohorts

    def __str__(self) -> str:
        return f"{self.kind} {self.country or ''} {self.years[0]}-{self.years[-1]}".replace("  ", " ")


@dataclass(frozen=True)
class IncidenceLevelResult:
    """
    Output of the incidence-level engine, in persons. No half-cycle adjustment;
    incidence shows up in prevalence in the same year.
    """

    P: np.ndarray
    Pcohorts: np.ndarray
    DT1D: np.ndarray
    years: np.ndarray
    country: Optional[str] = None
    elapsed: float = 0.0
    kind: Literal["incidence_level"] = "incidence_level"

    def __post_init__(self):
        _freeze(self.P, self.Pcohorts, self.DT1D)

    @property
    def P_cohorts_level(self) -> np.ndarray:
        return self.Pcohorts

    def __str__(self) -> str:
        return f"{self.kind} {self.country or ''} {self.years[0]}-{self.years[-1]}".replace("  ", " ")


@dataclass(frozen=True)
class GhostPopulation:
    """
    Prevalence and ghost population from direct incidence. The ghost population
    is the people who would be alive with T1D if their mortality were
    background mortality, split into onset deaths (zero by assumption here) and
    excess deaths attributable to glycaemic control (hba1c).
    """

    P_level: np.ndarray
    P_cohorts_level: np.ndarray
    I_flow: np.ndarray
    DDx_flow: np.ndarray
    DT1D_flow: np.ndarray
    ghost_level: np.ndarray
    ghost_ddx_level: np.ndarray
    ghost_hba1c_level: np.ndarray
    years: np.ndarray
    country: Optional[str] = None
    elapsed: float = 0.0
    pop_scale_factor: float = 1.0
    kind: Literal["ghost_population"] = "ghost_population"

    def __post_init__(self):
        _freeze(
            self.P_level, self.P_cohorts_level, self.I_flow, self.DDx_flow,
            self.DT1D_flow, self.ghost_level, self.ghost_ddx_level,
            self.ghost_hba1c_level,
        )

    def __str__(self) -> str:
        return f"{self.kind} {self.country or ''} {self.years[0]}-{self.years[-1]}".replace("  ", " ")
