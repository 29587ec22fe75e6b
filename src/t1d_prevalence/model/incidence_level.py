"""
Simplified prevalence calculator driven by incidence counts.

There is no susceptible compartment and no half-cycle adjustment: incidence is
contemporaneous, so 2020 incidence appears as 2020 prevalence. This keeps the
outputs aligned with the inputs. Warm-up years are not needed.
"""
import logging
from time import monotonic
from typing import Optional

import numpy as np

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.helpers.common_functions import check_matrix, check_years, shift_age
from t1d_prevalence.model.errors import CohortConsistencyError
from t1d_prevalence.model.results import GhostPopulation, IncidenceLevelResult


def _check_cohort_sums(P: np.ndarray, Pcohorts: np.ndarray, years: np.ndarray) -> None:
    cohort_sums = Pcohorts.sum(axis=(1, 2))
    age_sums = P.sum(axis=1)
    ok = np.isclose(cohort_sums, age_sums, rtol=c.COHORT_RTOL, atol=c.COHORT_TOL)
    if not np.all(ok):
        bad = int(np.flatnonzero(~ok)[0])
        raise CohortConsistencyError(
            f"Onset cohorts sum to {cohort_sums[bad]!r} but prevalence is "
            f"{age_sums[bad]!r} in {years[bad]}"
        )


def prevalence_from_incidence_level(
    I, qB, qT1D, years, country: Optional[str] = None
) -> IncidenceLevelResult:
    """
    Arguments:
        I (np.ndarray):     incidence in persons, (len(years), MAX_AGE)
        qB (np.ndarray):    background mortality, annual probability
        qT1D (np.ndarray):  T1D mortality, annual probability
        years:              consecutive years to model
        country:            label carried on the result

    Returns:
        IncidenceLevelResult with P and Pcohorts in persons and the T1D-cause
        mortality flow DT1D = (qT1D - qB) * P.

    Raises:
        InputShapeError if the matrices don't line up with years.
        CohortConsistencyError if the onset cohorts stop summing to P.
    """
    start_time = monotonic()
    years = check_years(years, min_length=1)
    n = len(years)
    I = check_matrix("I", I, n)
    qB = check_matrix("qB", qB, n)
    qT1D = check_matrix("qT1D", qT1D, n)

    P = np.zeros((n, c.MAX_AGE), dtype=np.float64)
    Pcohorts = np.zeros((n, c.MAX_AGE, c.MAX_AGE), dtype=np.float64)

    P[0] = I[0]
    Pcohorts[0] = np.diag(I[0])
    Pshift = np.empty(c.MAX_AGE)
    PCshift = np.empty((c.MAX_AGE, c.MAX_AGE))
    for t in range(n - 1):
        shift_age(P[t], 0.0, out=Pshift)
        shift_age(Pcohorts[t], 0.0, out=PCshift)
        survival = 1 - qT1D[t]

        # incidence lands in the same year it is reported
        P[t + 1] = Pshift * survival + I[t + 1]
        Pcohorts[t + 1] = PCshift * survival[:, None] + np.diag(I[t + 1])

    # T1D-cause mortality (flow)
    DT1D = (qT1D - qB) * P

    _check_cohort_sums(P, Pcohorts, years)

    return IncidenceLevelResult(
        P=P,
        Pcohorts=Pcohorts,
        DT1D=DT1D,
        years=years.copy(),
        country=country,
        elapsed=monotonic() - start_time,
    )


def ghost_population_from_incidence_level(
    I, qB, qT1D, years, country: Optional[str] = None
) -> GhostPopulation:
    """
    Prevalence and ghost population with direct incidence.

    The counterfactual runs the same incidence with background mortality in
    place of T1D mortality; the difference in prevalence is the ghost
    population. Deaths at onset are zero by assumption.
    """
    start_time = monotonic()
    logging.info("Ghost population from incidence level for %s ...", country)

    prev = prevalence_from_incidence_level(I, qB, qT1D, years, country)
    cfac = prevalence_from_incidence_level(I, qB, qB, years, country)

    ghost_ddx_level = np.zeros_like(prev.P)
    # reduced hba1c mortality shows up in prevalence
    ghost_hba1c_level = cfac.P - prev.P
    ghost_level = ghost_hba1c_level + ghost_ddx_level

    elapsed = monotonic() - start_time
    return GhostPopulation(
        P_level=prev.P.copy(),
        P_cohorts_level=prev.Pcohorts.copy(),
        I_flow=np.array(I, dtype=np.float64),
        DDx_flow=np.zeros_like(prev.P),
        DT1D_flow=prev.DT1D.copy(),
        ghost_level=ghost_level,
        ghost_ddx_level=ghost_ddx_level,
        ghost_hba1c_level=ghost_hba1c_level,
        years=prev.years.copy(),
        country=country,
        elapsed=elapsed,
        pop_scale_factor=1.0,
    )
