import numpy as np
import pandas as pd
import pytest

from t1d_prevalence.configs import c
from t1d_prevalence.model.inputs import InputMatrices


def constant(n_years, value):
    return np.full((n_years, c.MAX_AGE), float(value))


def random_rates(n_years, seed=0, dDx_by_age=True):
    """Plausible rate matrices: everything in [0, 1), T1D mortality above background."""
    rng = np.random.default_rng(seed)
    shape = (n_years, c.MAX_AGE)
    qB = rng.uniform(0.001, 0.05, shape)
    if dDx_by_age:
        dDx = rng.uniform(0.0, 0.5, shape)
    else:
        dDx = np.repeat(rng.uniform(0.0, 0.5, (n_years, 1)), c.MAX_AGE, axis=1)
    return {
        "i": rng.uniform(0.0, 0.001, shape),
        "qB": qB,
        "qT1D_n": np.minimum(qB * 2.5, 1.0),
        "qT1D_m": np.minimum(qB * 8.0, 1.0),
        "qT1D_percent_n": rng.uniform(0.0, 1.0, shape),
        "dDx": dDx,
    }


@pytest.fixture
def rates():
    years = np.arange(1990, 2030)
    return years, random_rates(len(years))


@pytest.fixture
def input_matrices():
    """Input bundle with minimal care worse than non-minimal care, dDx flat by age."""
    years = np.arange(2000, 2040)
    n = len(years)
    rng = np.random.default_rng(1)
    dDx = np.repeat(rng.uniform(0.05, 0.4, (n, 1)), c.MAX_AGE, axis=1)
    smr_n = np.repeat(rng.uniform(5.0, 9.0, (n, 1)), c.MAX_AGE, axis=1)
    smr_n[:, :10] *= 1.3
    return InputMatrices(
        i=rng.uniform(0.0, 0.0005, (n, c.MAX_AGE)),
        qB=rng.uniform(0.001, 0.03, (n, c.MAX_AGE)),
        dDx=dDx,
        smr_n=smr_n,
        smr_m=smr_n * 2.0,
        percent_n=rng.uniform(0.2, 0.8, (n, c.MAX_AGE)),
        years=years,
        pop=np.full((n, c.MAX_AGE), 1000.0),
        country="Testland",
    )


def make_long(years, **overrides):
    """Long-format input table, one row per year x age."""
    grid = pd.MultiIndex.from_product([years, c.AGES], names=["year", "age"])
    df = grid.to_frame(index=False)
    values = {
        "background_mortality_rate": 0.01,
        "background_population": 1000.0,
        "mortality_undiagnosed_rate": 0.1,
        "incidence_rate": 20.0,
        "value_smr_non_minimal_care": 3.0,
        "value_smr_minimal_care": 6.0,
        "value_percent_non_minimal_care": 0.5,
        "income_class": "LMIC",
    }
    values.update(overrides)
    for col, value in values.items():
        df[col] = value
    return df
