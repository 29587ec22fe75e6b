# input_matrices.py
"""
Turn long-format input tables (one row per year x age) into year x age rate
matrices for the illness-death model.
"""
import logging
from typing import Optional

import numpy as np
import pandas as pd

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.configs.run_config import RunConfig
from t1d_prevalence.configs.scenario import ScenarioFlags
from t1d_prevalence.model.errors import InputShapeError
from t1d_prevalence.model.inputs import InputMatrices

REQUIRED_COLUMNS = [
    "year",
    "age",
    "background_mortality_rate",
    "background_population",
    "mortality_undiagnosed_rate",
    "incidence_rate",
    "value_smr_non_minimal_care",
    "value_smr_minimal_care",
    "value_percent_non_minimal_care",
]
DEFAULT_RUN_COLUMNS = [
    "year",
    "age",
    "incidence_rate",
    "value_smr_non_minimal_care",
    "value_smr_minimal_care",
]


# ---------- helpers ----------
def _require_columns(df: pd.DataFrame, cols, label: str) -> None:
    missing = [col for col in cols if col not in df.columns]
    if missing:
        raise InputShapeError(f"{label} is missing columns: {missing}")


def pivot_variable(data_long: pd.DataFrame, column: str) -> pd.DataFrame:
    """
    Spread one variable into a year x age matrix (years on rows, ages 0..99 on
    columns). Every year must have every age exactly once.
    """
    try:
        wide = data_long.pivot(index="year", columns="age", values=column)
    except ValueError as e:
        raise InputShapeError(f"Duplicate year/age rows for {column}") from e

    wide = wide.sort_index().reindex(columns=c.AGES)
    wide.index = wide.index.astype(int)
    wide.columns = wide.columns.astype(int)
    if wide.isna().any().any():
        raise InputShapeError(f"{column} does not cover every year and age 0-99")
    if len(wide) > 1 and not np.all(np.diff(wide.index.to_numpy()) == 1):
        raise InputShapeError(f"{column} years are not consecutive")
    return wide.astype(np.float64)


def apply_scenarios(data_long: pd.DataFrame, scenario: ScenarioFlags) -> pd.DataFrame:
    """Return a copy of the long table with sensitivity toggles applied."""
    df = data_long.copy()
    if scenario.is_default:
        return df
    logging.info("Applying scenario: %s", scenario)

    rate_cols = [
        "incidence_rate",
        "mortality_undiagnosed_rate",
        "value_smr_minimal_care",
        "value_smr_non_minimal_care",
    ]
    df[rate_cols] = df[rate_cols].astype(np.float64)

    factor = scenario.pediatric_incidence_factor
    if factor != 1.0:
        pediatric = df["age"] <= c.PEDIATRIC_MAX_AGE
        df.loc[pediatric, "incidence_rate"] *= factor

    factor = scenario.smr_factor
    if factor != 1.0:
        df["value_smr_minimal_care"] *= factor
        df["value_smr_non_minimal_care"] *= factor

    if scenario.diagnosis_rate_plus_25_pp:
        df["mortality_undiagnosed_rate"] = (
            df["mortality_undiagnosed_rate"] - c.DIAGNOSIS_SHIFT_PP
        ).clip(lower=0.0)

    if scenario.diagnosis_rate_minus_25_pp:
        _require_columns(df, ["income_class"], "data_long")
        idx = (df["income_class"] != c.HIGH_INCOME_CLASS) & (
            df["age"] <= c.DIAGNOSIS_SHIFT_MAX_AGE
        )
        if idx.any():
            df.loc[idx, "mortality_undiagnosed_rate"] = (
                df.loc[idx, "mortality_undiagnosed_rate"] + c.DIAGNOSIS_SHIFT_PP
            ).clip(upper=c.DIAGNOSIS_RATE_CEILING)

    # curve names follow the calibration workbook: "left" reads the right curve
    if scenario.diagnosis_rate_left:
        _require_columns(df, ["mortality_undiagnosed_rate_right"], "data_long")
        df["mortality_undiagnosed_rate"] = df["mortality_undiagnosed_rate_right"]
    if scenario.diagnosis_rate_right:
        _require_columns(df, ["mortality_undiagnosed_rate_left"], "data_long")
        df["mortality_undiagnosed_rate"] = df["mortality_undiagnosed_rate_left"]

    return df


def apply_growth_rate(
    matrix_rate: pd.DataFrame,
    matrix_rate_default: Optional[pd.DataFrame] = None,
    year_start: int = c.PROJECTION_START_YEAR,
    rate: Optional[float] = None,
) -> pd.DataFrame:
    """
    Project rates past `year_start` by repeatedly applying a per-age growth
    ratio: the mean of the GROWTH_WINDOW trailing year-over-year ratios of the
    default matrix, or 1 + rate/100 when an explicit rate is given. Ages with
    an undefined ratio (0/0) are projected to 0.
    """
    if matrix_rate_default is None:
        matrix_rate_default = matrix_rate
    first = year_start - c.GROWTH_WINDOW
    window_years = list(range(first, year_start + 1))
    missing = [y for y in window_years if y not in matrix_rate_default.index]
    if missing:
        raise InputShapeError(
            f"Growth window {first}-{year_start} not covered, missing {missing}"
        )

    window = matrix_rate_default.loc[window_years].to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = (window[1:] / window[:-1]).mean(axis=0)

    if rate is not None:
        ratio[~np.isnan(ratio)] = 1 + rate / 100
    ratio[np.isnan(ratio)] = 0

    out = matrix_rate.copy()
    for year in range(year_start + 1, int(out.index.max()) + 1):
        out.loc[year] = out.loc[year - 1].to_numpy() * ratio
    return out


def prefill_history(
    matrix_rate: pd.DataFrame, start_year: int = c.HISTORY_START_YEAR
) -> pd.DataFrame:
    """
    Repeat the earliest year's row back to `start_year` so the model warm-up
    has no missing years.
    """
    first = int(matrix_rate.index.min())
    if first <= start_year:
        return matrix_rate
    prefix = pd.DataFrame(
        np.repeat(matrix_rate.loc[[first]].to_numpy(), first - start_year, axis=0),
        index=pd.Index(range(start_year, first), name=matrix_rate.index.name),
        columns=matrix_rate.columns,
    )
    return pd.concat([prefix, matrix_rate])


def cap_diagnosis_death(dDx: pd.DataFrame, cap: float = c.DDX_CAP) -> pd.DataFrame:
    """dDx can't be 100% or i / (1 - dDx) is undefined."""
    over = dDx >= 1
    n_over = int(over.to_numpy().sum())
    if n_over:
        logging.warning(f"Capping {n_over} dDx values >= 1 at {cap}")
    return dDx.mask(over, cap)


# ---------- builder ----------
def build_input_matrices(
    data_long: pd.DataFrame,
    data_long_default_run: Optional[pd.DataFrame] = None,
    scenario: Optional[ScenarioFlags] = None,
    config: Optional[RunConfig] = None,
    smr_scale_factor: float = 1.0,
    incidence_scale_factor: float = 1.0,
    country: Optional[str] = None,
) -> InputMatrices:
    """
    Arguments:
        data_long (pd.DataFrame):
            One row per year x age with REQUIRED_COLUMNS (incidence per 100k).
        data_long_default_run (pd.DataFrame):
            Same table for the default run. Growth ratios for incidence and
            SMRs are taken from it so a scenario doesn't change the trend.
            Defaults to data_long.
        scenario (ScenarioFlags): sensitivity toggles.
        config (RunConfig): projection switches.

    Returns:
        InputMatrices covering HISTORY_START_YEAR to the last data year.
    """
    scenario = scenario or ScenarioFlags()
    config = config or RunConfig()
    if data_long_default_run is None:
        data_long_default_run = data_long
    _require_columns(data_long, REQUIRED_COLUMNS, "data_long")
    _require_columns(data_long_default_run, DEFAULT_RUN_COLUMNS, "data_long_default_run")

    data_long = apply_scenarios(data_long, scenario)

    qB = pivot_variable(data_long, "background_mortality_rate")
    pop = pivot_variable(data_long, "background_population")
    dDx = pivot_variable(data_long, "mortality_undiagnosed_rate")
    i = incidence_scale_factor * pivot_variable(data_long, "incidence_rate") / c.INCIDENCE_PER
    i_default = (
        incidence_scale_factor
        * pivot_variable(data_long_default_run, "incidence_rate")
        / c.INCIDENCE_PER
    )
    smr_n = smr_scale_factor * pivot_variable(data_long, "value_smr_non_minimal_care")
    smr_n_default = smr_scale_factor * pivot_variable(
        data_long_default_run, "value_smr_non_minimal_care"
    )
    smr_m = smr_scale_factor * pivot_variable(data_long, "value_smr_minimal_care")
    smr_m_default = smr_scale_factor * pivot_variable(
        data_long_default_run, "value_smr_minimal_care"
    )
    percent_n = pivot_variable(data_long, "value_percent_non_minimal_care")

    if config.run_projection:
        ys = config.projection_start_year
        rate = config.projection_growth_rate
        logging.info("Projecting rates past %d", ys)
        i = apply_growth_rate(i, i_default, year_start=ys, rate=rate)
        dDx = apply_growth_rate(dDx, year_start=ys, rate=rate)
        smr_n = apply_growth_rate(smr_n, smr_n_default, year_start=ys, rate=rate)
        smr_m = apply_growth_rate(smr_m, smr_m_default, year_start=ys, rate=rate)

    dDx = cap_diagnosis_death(dDx)

    matrices = {
        "i": i,
        "qB": qB,
        "dDx": dDx,
        "smr_n": smr_n,
        "smr_m": smr_m,
        "percent_n": percent_n,
        "pop": pop,
    }
    matrices = {k: prefill_history(m) for k, m in matrices.items()}
    years = matrices["qB"].index.to_numpy()
    for name, m in matrices.items():
        if not np.array_equal(m.index.to_numpy(), years):
            raise InputShapeError(f"{name} years don't match background mortality")

    return InputMatrices(
        **{k: m.to_numpy() for k, m in matrices.items()},
        years=years,
        country=country,
    )
