import numpy as np
import pytest

from t1d_prevalence.configs import c
from t1d_prevalence.model.errors import CohortConsistencyError, InputShapeError
from t1d_prevalence.model.incidence_level import (
    _check_cohort_sums,
    ghost_population_from_incidence_level,
    prevalence_from_incidence_level,
)

from conftest import constant


def _incidence_counts(n_years, seed=3):
    rng = np.random.default_rng(seed)
    return rng.uniform(0, 50, (n_years, c.MAX_AGE))


def test_prevalence_decays_without_new_incidence():
    years = np.arange(2000, 2030)
    n = len(years)
    I = np.zeros((n, c.MAX_AGE))
    I[0] = 100.0
    res = prevalence_from_incidence_level(I, constant(n, 0.01), constant(n, 0.05), years)

    totals = res.P.sum(axis=1)
    assert np.all(np.diff(totals) < 0)
    # each cohort only shrinks as it ages
    assert np.all(res.P[1:, 1:] <= res.P[:-1, :-1])
    np.testing.assert_allclose(res.P[5, 5], 100.0 * 0.95**5)


def test_no_excess_mortality_at_background():
    years = np.arange(2000, 2010)
    n = len(years)
    I = np.zeros((n, c.MAX_AGE))
    I[0] = 10.0
    q = constant(n, 0.02)
    res = prevalence_from_incidence_level(I, q, q, years)
    assert np.all(res.DT1D == 0.0)


def test_incidence_is_contemporaneous():
    years = np.arange(2000, 2005)
    n = len(years)
    I = _incidence_counts(n)
    res = prevalence_from_incidence_level(I, constant(n, 0.01), constant(n, 0.04), years)
    np.testing.assert_array_equal(res.P[0], I[0])
    np.testing.assert_allclose(res.P[1, 0], I[1, 0])
    np.testing.assert_allclose(res.P[1, 10], I[0, 9] * 0.96 + I[1, 10])
    np.testing.assert_array_equal(res.Pcohorts[0], np.diag(I[0]))
    np.testing.assert_allclose(res.DT1D, 0.03 * res.P)


def test_cohorts_sum_to_prevalence():
    years = np.arange(1950, 2020)
    n = len(years)
    res = prevalence_from_incidence_level(
        _incidence_counts(n) / 100, constant(n, 0.01), constant(n, 0.03), years
    )
    np.testing.assert_allclose(
        res.Pcohorts.sum(axis=(1, 2)), res.P.sum(axis=1), rtol=0, atol=1e-10
    )
    np.testing.assert_allclose(res.Pcohorts.sum(axis=2), res.P, rtol=1e-12, atol=1e-12)


def test_single_year_run():
    I = _incidence_counts(1)
    res = prevalence_from_incidence_level(
        I, constant(1, 0.01), constant(1, 0.03), [2020], country="Chile"
    )
    np.testing.assert_array_equal(res.P, I)
    assert res.kind == "incidence_level"
    assert res.country == "Chile"
    assert res.elapsed >= 0.0


def test_cohort_mismatch_aborts():
    years = np.arange(2000, 2003)
    P = np.ones((3, c.MAX_AGE))
    Pcohorts = np.zeros((3, c.MAX_AGE, c.MAX_AGE))
    for t in range(3):
        Pcohorts[t] = np.diag(P[t])
    Pcohorts[2, 50, 3] += 1e-6
    with pytest.raises(CohortConsistencyError, match="2002"):
        _check_cohort_sums(P, Pcohorts, years)


def test_shape_mismatch_fails_fast():
    years = np.arange(2000, 2005)
    with pytest.raises(InputShapeError):
        prevalence_from_incidence_level(
            constant(5, 1.0), constant(4, 0.01), constant(5, 0.02), years
        )
    with pytest.raises(InputShapeError):
        prevalence_from_incidence_level(
            constant(5, 1.0), constant(5, 0.01), constant(5, 0.02), years[:-1]
        )


def test_ghost_population_from_incidence():
    years = np.arange(2000, 2030)
    n = len(years)
    I = _incidence_counts(n)
    qB = constant(n, 0.01)
    ghost = ghost_population_from_incidence_level(I, qB, constant(n, 0.04), years, "Kenya")

    assert ghost.kind == "ghost_population"
    assert ghost.country == "Kenya"
    assert np.all(ghost.ghost_ddx_level == 0.0)
    assert np.all(ghost.DDx_flow == 0.0)
    assert np.all(ghost.ghost_hba1c_level >= 0.0)
    assert ghost.ghost_level.sum() > 0
    np.testing.assert_array_equal(ghost.ghost_level, ghost.ghost_hba1c_level)

    cfac = prevalence_from_incidence_level(I, qB, qB, years)
    np.testing.assert_allclose(ghost.ghost_level, cfac.P - ghost.P_level)
    np.testing.assert_array_equal(ghost.I_flow, I)


def test_no_ghosts_without_excess_mortality():
    years = np.arange(2000, 2010)
    n = len(years)
    q = constant(n, 0.01)
    ghost = ghost_population_from_incidence_level(_incidence_counts(n), q, q, years)
    assert np.all(ghost.ghost_level == 0.0)
