# cohort_outputs.py
"""
Reshape and summarize model results for reporting.
"""
import re
from typing import Optional, Dict, Tuple, Union
from pathlib import Path

import numpy as np
import pandas as pd

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.model.results import (
    GhostPopulation,
    IncidenceLevelResult,
    PrevalenceResult,
)

AnyResult = Union[PrevalenceResult, IncidenceLevelResult, GhostPopulation]


# ---------- helpers ----------
def _safe_label(result: AnyResult, suffix: Optional[str] = None) -> str:
    """
    Short, file-safe label for a run, e.g. Kenya_prevalence_1860-2040
    """
    country = getattr(result, "country", None) or "cohort"
    label = f"{country}_{result.kind}_{result.years[0]}-{result.years[-1]}"
    if suffix:
        label = f"{label}__{suffix}"
    return re.sub(r"[^A-Za-z0-9_+.-]+", "_", label)


def _year_frame(mtx: np.ndarray, years: np.ndarray) -> pd.DataFrame:
    """Year column followed by one column per age (or onset age)."""
    df = pd.DataFrame(mtx, columns=list(range(mtx.shape[1])))
    df.insert(0, "year", years)
    return df


def _require_result(obj, types, what: str) -> None:
    if not isinstance(obj, types):
        raise TypeError(f"{what} expects a model result, got {type(obj).__name__}")


# ---------- reshaping ----------
def matrices_to_long_format(years=None, ages=None, **matrices) -> pd.DataFrame:
    """
    Stack year x age matrices of the same shape into a long table with one row
    per (year, age) and one column per matrix. Years and ages are read from
    DataFrame labels when not given.
    """
    if not matrices:
        raise ValueError("No matrices specified.")
    first = next(iter(matrices.values()))
    if years is None:
        if not isinstance(first, pd.DataFrame):
            raise ValueError("years are required for plain arrays")
        years = first.index.to_numpy()
    if ages is None:
        ages = first.columns.to_numpy() if isinstance(first, pd.DataFrame) else c.AGES

    shape = (len(years), len(ages))
    index = pd.MultiIndex.from_product([years, ages], names=["year", "age"])
    out = pd.DataFrame(index=index)
    for name, mtx in matrices.items():
        arr = np.asarray(mtx, dtype=np.float64)
        if arr.shape != shape:
            raise ValueError(f"{name} has shape {arr.shape}, expected {shape}")
        out[name] = arr.ravel()
    return out.reset_index()


def summarize_compartments(result: PrevalenceResult) -> pd.DataFrame:
    """Long table of compartments and flows of an illness-death run."""
    _require_result(result, PrevalenceResult, "summarize_compartments")
    return matrices_to_long_format(
        result.years,
        c.AGES,
        S=result.S,
        P=result.P,
        D=result.D,
        I=result.I,
        DDx=result.DDx,
        DT1D=result.DT1D,
        DBGP=result.DBGP,
        DBGS=result.DBGS,
    )


def prevalence_by_cohort(result: AnyResult) -> pd.DataFrame:
    """
    Tabulate prevalence by *year* of onset instead of age of onset.

    Rows are onset years (newest first, back to min(years) - MAX_AGE), columns
    are reference years. Totals per reference year are unchanged. Each year
    slice of the cohort array is lower-triangular in (age, onset age); its k-th
    sub-diagonal holds those with onset k years before the reference year.
    """
    _require_result(
        result,
        (PrevalenceResult, IncidenceLevelResult, GhostPopulation),
        "prevalence_by_cohort",
    )
    p_cohorts = result.P_cohorts_level
    if p_cohorts is None:
        raise ValueError("Result has no onset cohorts; run with track_days_lost")

    years = result.years
    n = len(years)
    cohort_years = np.arange(years.max(), years.min() - c.MAX_AGE - 1, -1)
    year_prev = np.zeros((len(cohort_years), n))

    ref = np.arange(n)
    for years_ago in range(c.MAX_AGE):
        totals = np.trace(p_cohorts, offset=-years_ago, axis1=1, axis2=2)
        year_prev[years_ago + n - 1 - ref, ref] = totals

    return pd.DataFrame(
        year_prev,
        index=pd.Index(cohort_years, name="onset_year"),
        columns=pd.Index(years, name="year"),
    )


def prevalence_summary(ghost: GhostPopulation) -> Dict[str, pd.DataFrame]:
    """Tables for the prevalence / ghost population workbook."""
    _require_result(ghost, GhostPopulation, "prevalence_summary")
    years = ghost.years
    ghost_totals = pd.DataFrame(
        {
            "year": years,
            "ghost": ghost.ghost_level.sum(axis=1),
            "ghost_ddx": ghost.ghost_ddx_level.sum(axis=1),
            "ghost_hba1c": ghost.ghost_hba1c_level.sum(axis=1),
        }
    )
    return {
        "prevalence_age": _year_frame(ghost.P_cohorts_level.sum(axis=2), years),
        "prevalence_cohort": _year_frame(ghost.P_cohorts_level.sum(axis=1), years),
        "ghost": ghost_totals,
        "ghost_age": _year_frame(ghost.ghost_level, years),
        "ghost_ddx_age": _year_frame(ghost.ghost_ddx_level, years),
        "ghost_hba1c_age": _year_frame(ghost.ghost_hba1c_level, years),
    }


# ---------- run comparison ----------
def persons_scale(baseline: PrevalenceResult, pop: Optional[np.ndarray]) -> np.ndarray:
    """
    Persons per unit of the synthetic cohort: background population over the
    share of the cohort alive in the baseline. 1 when no population is given.
    """
    if pop is None:
        return np.ones_like(baseline.P)
    alive = baseline.S + baseline.P
    with np.errstate(divide="ignore", invalid="ignore"):
        scale = np.where(alive > 0, np.asarray(pop) / alive, 0.0)
    return scale


def ghost_level(
    baseline: PrevalenceResult,
    counterfactual: PrevalenceResult,
    pop: Optional[np.ndarray] = None,
) -> np.ndarray:
    """People alive with T1D under the counterfactual but not in the baseline."""
    _require_result(baseline, PrevalenceResult, "ghost_level")
    _require_result(counterfactual, PrevalenceResult, "ghost_level")
    if not np.array_equal(baseline.years, counterfactual.years):
        raise ValueError("Runs cover different years")
    return (counterfactual.P - baseline.P) * persons_scale(baseline, pop)


def compare_runs(
    baseline: PrevalenceResult,
    counterfactual: PrevalenceResult,
    pop: Optional[np.ndarray] = None,
) -> pd.DataFrame:
    """
    Per-year totals of a counterfactual (lever) run against the baseline:
    prevalence in both, ghost population, onset and excess deaths avoided.
    """
    ghost = ghost_level(baseline, counterfactual, pop)
    scale = persons_scale(baseline, pop)
    return pd.DataFrame(
        {
            "year": baseline.years,
            "prevalence": (baseline.P * scale).sum(axis=1),
            "prevalence_counterfactual": (counterfactual.P * scale).sum(axis=1),
            "ghost": ghost.sum(axis=1),
            "onset_deaths_avoided": ((baseline.DDx - counterfactual.DDx) * scale).sum(
                axis=1
            ),
            "excess_deaths_avoided": (
                (baseline.DT1D - counterfactual.DT1D) * scale
            ).sum(axis=1),
        }
    )


# ---------- IO ----------
def save_result_arrays(
    result: PrevalenceResult,
    out_dir: Path,
    prefix: Optional[str] = None,
) -> Tuple[Path, ...]:
    """
    Save compartments and flows as year x age CSVs.
    """
    _require_result(result, PrevalenceResult, "save_result_arrays")
    out_dir.mkdir(parents=True, exist_ok=True)
    label = prefix or _safe_label(result)
    paths = []
    for name in ("S", "P", "D", "I", "DDx", "DT1D"):
        p = out_dir / f"{label}__{name}.csv"
        _year_frame(getattr(result, name), result.years).to_csv(p, index=False)
        paths.append(p)
    return tuple(paths)


def save_comparison(df: pd.DataFrame, out_dir: Path, base_name: str) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    p = out_dir / f"{base_name}__comparison.csv"
    df.to_csv(p, index=False)
    return p
