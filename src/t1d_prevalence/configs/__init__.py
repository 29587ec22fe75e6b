from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.configs.lever import Lever, SmrTarget, load_levers
from t1d_prevalence.configs.run_config import RunConfig, load_run_config
from t1d_prevalence.configs.scenario import ScenarioFlags, load_scenario_flags
