# main.py
"""
Run the illness-death model for one country: baseline plus each lever, and
write compartments and lever comparisons to CSV.

Input is a long-format CSV with one row per year x age (see
processing.input_matrices.REQUIRED_COLUMNS). Run with:
python3 -m t1d_prevalence.main
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

import pandas as pd

from t1d_prevalence.configs import Lever, RunConfig, ScenarioFlags
from t1d_prevalence.configs import load_levers, load_run_config, load_scenario_flags
from t1d_prevalence.model.illness_death import run_inputs
from t1d_prevalence.model.results import PrevalenceResult
from t1d_prevalence.processing.cohort_outputs import (
    compare_runs,
    prevalence_by_cohort,
    save_comparison,
    save_result_arrays,
)
from t1d_prevalence.processing.input_matrices import build_input_matrices
from t1d_prevalence.processing.levers import apply_lever

# ------------------ USER CONFIG ------------------
PROJECT_ROOT = Path(__file__).resolve().parents[2]

DATA_DIR = PROJECT_ROOT / "data"
OUTPUTS_DIR = PROJECT_ROOT / "outputs"
CONFIGS_DIR = PROJECT_ROOT / "run_configs"

COUNTRY = "Kenya"
INPUT_FILE = "input_long.csv"
DEFAULT_RUN_FILE = None  # None: growth trends from INPUT_FILE itself

RUN_CONFIG_FILE = "run_config.json"  # optional; RunConfig() if missing
SCENARIOS_FILE = "scenarios.json"  # optional; default scenario if missing
SCENARIO_NAME = "default"
LEVERS_FILE = "levers.json"  # optional; levers 1-4 if missing

# Save options:
SAVE_ARRAYS = True  # set True to write S/P/D/flow matrices per run
SAVE_COHORTS = True  # set True to write prevalence by onset year (needs cohorts)


# ------------------ helpers ------------------
def load_config() -> RunConfig:
    path = CONFIGS_DIR / RUN_CONFIG_FILE
    return load_run_config(path) if path.exists() else RunConfig()


def load_scenario() -> ScenarioFlags:
    path = CONFIGS_DIR / SCENARIOS_FILE
    if not path.exists():
        return ScenarioFlags()
    scenarios = load_scenario_flags(path)
    if SCENARIO_NAME not in scenarios:
        raise ValueError(f"Unknown scenario {SCENARIO_NAME}; have {list(scenarios)}")
    return scenarios[SCENARIO_NAME]


def default_levers(config: RunConfig) -> list[Lever]:
    return [Lever(level, start_year=config.lever_change_start_at) for level in range(1, 5)]


def load_lever_list(config: RunConfig) -> list[Lever]:
    path = CONFIGS_DIR / LEVERS_FILE
    return load_levers(path) if path.exists() else default_levers(config)


# ------------------ model run ------------------
def run_country(
    data_long: pd.DataFrame,
    data_long_default: pd.DataFrame | None,
    config: RunConfig,
    scenario: ScenarioFlags,
    levers: list[Lever],
) -> Dict[str, PrevalenceResult]:
    """Baseline and one counterfactual run per lever, keyed by lever name."""
    inputs = build_input_matrices(
        data_long,
        data_long_default,
        scenario=scenario,
        config=config,
        country=COUNTRY,
    )

    results = {"base": run_inputs(inputs, config)}
    for lever in levers:
        results[lever.name] = run_inputs(apply_lever(inputs, lever), config)

    base = results["base"]
    for name, res in results.items():
        if name == "base":
            continue
        df = compare_runs(base, res, pop=inputs.pop)
        save_comparison(df, OUTPUTS_DIR, base_name=f"{COUNTRY}__{name}")

    if SAVE_ARRAYS:
        for name, res in results.items():
            save_result_arrays(res, OUTPUTS_DIR, prefix=f"{COUNTRY}__{name}")
    if SAVE_COHORTS and config.track_days_lost:
        prevalence_by_cohort(base).to_csv(
            OUTPUTS_DIR / f"{COUNTRY}__prevalence_by_onset_year.csv"
        )
    return results


# ------------------ main flow ------------------
def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    config = load_config()
    scenario = load_scenario()
    levers = load_lever_list(config)
    logging.info("Config: %s; scenario: %s", config, scenario)

    data_long = pd.read_csv(DATA_DIR / INPUT_FILE)
    data_long_default = (
        pd.read_csv(DATA_DIR / DEFAULT_RUN_FILE) if DEFAULT_RUN_FILE else None
    )

    OUTPUTS_DIR.mkdir(parents=True, exist_ok=True)
    run_country(data_long, data_long_default, config, scenario, levers)


if __name__ == "__main__":
    main()
