class InputShapeError(ValueError):
    """Input matrices or year vector fail the engine's preconditions."""


class DegenerateRateError(ValueError):
    """Death-on-diagnosis rate reached 1, so i / (1 - dDx) is undefined."""


class CohortConsistencyError(RuntimeError):
    """Onset-cohort bookkeeping no longer sums to the aggregate prevalence."""
