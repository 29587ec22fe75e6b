from t1d_prevalence.configs import Lever, RunConfig, ScenarioFlags, SmrTarget
from t1d_prevalence.model.errors import (
    CohortConsistencyError,
    DegenerateRateError,
    InputShapeError,
)
from t1d_prevalence.model.illness_death import (
    IllnessDeathModel,
    calculate_prevalence,
    run_inputs,
)
from t1d_prevalence.model.incidence_level import (
    ghost_population_from_incidence_level,
    prevalence_from_incidence_level,
)
from t1d_prevalence.model.inputs import InputMatrices
from t1d_prevalence.model.results import (
    GhostPopulation,
    IncidenceLevelResult,
    PrevalenceResult,
)
from t1d_prevalence.processing.input_matrices import build_input_matrices
from t1d_prevalence.processing.levers import apply_lever, apply_smr_target
