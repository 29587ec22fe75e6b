import numpy as np
import pandas as pd
import pytest

from t1d_prevalence.configs import RunConfig, ScenarioFlags, c
from t1d_prevalence.model.errors import InputShapeError
from t1d_prevalence.processing.input_matrices import (
    apply_growth_rate,
    apply_scenarios,
    build_input_matrices,
    pivot_variable,
    prefill_history,
)

from conftest import make_long

YEARS = np.arange(2000, 2026)


def _age_row(m, inputs, year):
    return m[inputs.row(year)]


def test_builds_rectangular_matrices_back_to_history_start():
    inputs = build_input_matrices(make_long(YEARS), country="Kenya")
    assert inputs.years[0] == c.HISTORY_START_YEAR
    assert inputs.years[-1] == YEARS[-1]
    assert inputs.i.shape == (len(inputs.years), c.MAX_AGE)
    assert inputs.country == "Kenya"
    # incidence per 100k becomes a rate
    np.testing.assert_allclose(inputs.i, 20.0 / 1e5)
    np.testing.assert_allclose(inputs.qB, 0.01)
    np.testing.assert_allclose(inputs.pop, 1000.0)


def test_history_repeats_first_data_year():
    df = make_long(YEARS)
    df.loc[df["year"] == 2000, "background_mortality_rate"] = 0.02
    inputs = build_input_matrices(df)
    hist = inputs.years < 2000
    assert hist.sum() == 2000 - c.HISTORY_START_YEAR
    np.testing.assert_allclose(inputs.qB[hist], 0.02)
    np.testing.assert_allclose(inputs.qB[~hist][1:], 0.01)


def test_prefill_is_noop_when_history_present():
    m = pd.DataFrame(np.ones((3, 2)), index=[1850, 1851, 1852])
    assert prefill_history(m, start_year=1851) is m


def test_death_on_diagnosis_is_capped():
    df = make_long(YEARS)
    df.loc[df["age"] < 5, "mortality_undiagnosed_rate"] = 1.0
    inputs = build_input_matrices(df)
    assert inputs.dDx.max() == c.DDX_CAP
    np.testing.assert_allclose(inputs.dDx[:, :5], c.DDX_CAP)
    np.testing.assert_allclose(inputs.dDx[:, 5:], 0.1)


def test_scale_factors():
    inputs = build_input_matrices(
        make_long(YEARS), smr_scale_factor=2.0, incidence_scale_factor=0.5
    )
    np.testing.assert_allclose(inputs.smr_n, 6.0)
    np.testing.assert_allclose(inputs.smr_m, 12.0)
    np.testing.assert_allclose(inputs.i, 10.0 / 1e5)


@pytest.mark.parametrize(
    "toggle, factor",
    [
        ("pediatric_incidence_plus_10_perc", 1.10),
        ("pediatric_incidence_minus_10_perc", 0.90),
        ("pediatric_incidence_plus_25_perc", 1.25),
        ("pediatric_incidence_minus_25_perc", 0.75),
    ],
)
def test_pediatric_incidence_scenarios(toggle, factor):
    inputs = build_input_matrices(make_long(YEARS), scenario=ScenarioFlags(**{toggle: True}))
    np.testing.assert_allclose(inputs.i[:, : c.PEDIATRIC_MAX_AGE + 1], factor * 20.0 / 1e5)
    np.testing.assert_allclose(inputs.i[:, c.PEDIATRIC_MAX_AGE + 1 :], 20.0 / 1e5)


@pytest.mark.parametrize("toggle, factor", [("smr_plus_10_perc", 1.1), ("smr_minus_10_perc", 0.9)])
def test_smr_scenarios(toggle, factor):
    inputs = build_input_matrices(make_long(YEARS), scenario=ScenarioFlags(**{toggle: True}))
    np.testing.assert_allclose(inputs.smr_n, 3.0 * factor)
    np.testing.assert_allclose(inputs.smr_m, 6.0 * factor)


def test_diagnosis_rate_plus_25_pp_floors_at_zero():
    df = make_long(YEARS)
    df.loc[df["age"] >= 50, "mortality_undiagnosed_rate"] = 0.6
    out = apply_scenarios(df, ScenarioFlags(diagnosis_rate_plus_25_pp=True))
    assert (out.loc[out["age"] < 50, "mortality_undiagnosed_rate"] == 0.0).all()
    np.testing.assert_allclose(out.loc[out["age"] >= 50, "mortality_undiagnosed_rate"], 0.35)
    # the input table is untouched
    assert (df.loc[df["age"] < 50, "mortality_undiagnosed_rate"] == 0.1).all()


def test_diagnosis_rate_minus_25_pp_hits_young_non_hic_only():
    df = make_long(YEARS)
    df.loc[df["year"] >= 2010, "income_class"] = "HIC"
    # the HIC years keep their age-0 rate of 0.1
    df.loc[(df["age"] == 0) & (df["year"] < 2010), "mortality_undiagnosed_rate"] = 0.9
    out = apply_scenarios(df, ScenarioFlags(diagnosis_rate_minus_25_pp=True))

    young_lmic = (out["age"] <= 24) & (out["year"] < 2010)
    np.testing.assert_allclose(
        out.loc[young_lmic & (out["age"] > 0), "mortality_undiagnosed_rate"], 0.35
    )
    np.testing.assert_allclose(
        out.loc[young_lmic & (out["age"] == 0), "mortality_undiagnosed_rate"],
        c.DIAGNOSIS_RATE_CEILING,
    )
    np.testing.assert_allclose(out.loc[~young_lmic, "mortality_undiagnosed_rate"], 0.1)


def test_diagnosis_rate_curves():
    df = make_long(
        YEARS, mortality_undiagnosed_rate_left=0.2, mortality_undiagnosed_rate_right=0.3
    )
    left = apply_scenarios(df, ScenarioFlags(diagnosis_rate_left=True))
    right = apply_scenarios(df, ScenarioFlags(diagnosis_rate_right=True))
    assert (left["mortality_undiagnosed_rate"] == 0.3).all()
    assert (right["mortality_undiagnosed_rate"] == 0.2).all()
    with pytest.raises(InputShapeError):
        apply_scenarios(make_long(YEARS), ScenarioFlags(diagnosis_rate_left=True))


def test_conflicting_toggles_rejected():
    with pytest.raises(ValueError):
        ScenarioFlags(smr_plus_10_perc=True, smr_minus_10_perc=True)
    with pytest.raises(ValueError):
        ScenarioFlags(
            pediatric_incidence_plus_10_perc=True, pediatric_incidence_minus_25_perc=True
        )


def test_missing_column():
    df = make_long(YEARS).drop(columns=["value_smr_minimal_care"])
    with pytest.raises(InputShapeError, match="value_smr_minimal_care"):
        build_input_matrices(df)


def test_duplicate_and_missing_cells():
    df = make_long(YEARS)
    with pytest.raises(InputShapeError):
        pivot_variable(pd.concat([df, df.iloc[:1]]), "incidence_rate")
    with pytest.raises(InputShapeError):
        pivot_variable(df[df["age"] != 42], "incidence_rate")
    with pytest.raises(InputShapeError):
        pivot_variable(df[df["year"] != 2010], "incidence_rate")


def _growing(years, rate):
    values = (1 + rate) ** (years - years[0])
    return pd.DataFrame(
        np.repeat(values[:, None], c.MAX_AGE, axis=1), index=years, columns=c.AGES
    )


def test_growth_rate_extends_trailing_trend():
    years = np.arange(2005, 2031)
    m = _growing(years, 0.02)
    m.loc[2022:] = 99.0  # overwritten by the projection
    out = apply_growth_rate(m, year_start=2021)

    np.testing.assert_allclose(out.loc[:2021], m.loc[:2021])
    np.testing.assert_allclose(out.loc[2030], 1.02**25)
    # default matrix supplies the trend, projected matrix supplies the level
    halved = apply_growth_rate(m / 2, matrix_rate_default=m, year_start=2021)
    np.testing.assert_allclose(halved.loc[2030], 0.5 * 1.02**25)


def test_growth_rate_override_and_undefined_ratio():
    years = np.arange(2005, 2031)
    m = _growing(years, 0.02)
    m[7] = 0.0
    out = apply_growth_rate(m, year_start=2021, rate=5)
    np.testing.assert_allclose(out.loc[2022, 0], m.loc[2021, 0] * 1.05)
    assert (out.loc[2022:, 7] == 0.0).all()


def test_growth_window_must_be_covered():
    m = _growing(np.arange(2015, 2031), 0.02)
    with pytest.raises(InputShapeError):
        apply_growth_rate(m, year_start=2021)


def test_projection_through_builder():
    years = np.arange(2000, 2031)
    df = make_long(years)
    df["incidence_rate"] = 20.0 * 1.01 ** (df["year"] - 2000)
    df.loc[df["year"] > 2021, "incidence_rate"] = 0.0
    inputs = build_input_matrices(df, config=RunConfig(run_projection=True))
    np.testing.assert_allclose(
        _age_row(inputs.i, inputs, 2030), 20.0 * 1.01**30 / 1e5, rtol=1e-10
    )
    # flat SMRs stay flat
    np.testing.assert_allclose(inputs.smr_n, 3.0)
