import numpy as np

# ---------------------------------------------------------------------------- #
# AGE AXIS
# ---------------------------------------------------------------------------- #

MAX_AGE = 100  # ages 0..99, ie up until the 100th birthday
AGES = np.arange(MAX_AGE)

# ---------------------------------------------------------------------------- #
# YEAR AXIS
# ---------------------------------------------------------------------------- #

HISTORY_START_YEAR = 1860  # first modeled year (warm-up)
PROJECTION_START_YEAR = 2021  # last year with observed data before projection
GROWTH_WINDOW = 10  # trailing years averaged for the growth ratio

# ---------------------------------------------------------------------------- #
# INPUT RATES
# ---------------------------------------------------------------------------- #

DDX_CAP = 0.95  # dDx can't be 100% or i / (1 - dDx) is undefined
INCIDENCE_PER = 1e5  # incidence tables are per 100k
PEDIATRIC_MAX_AGE = 18
DIAGNOSIS_SHIFT_MAX_AGE = 24
DIAGNOSIS_SHIFT_PP = 0.25
DIAGNOSIS_RATE_CEILING = 0.99999999
HIGH_INCOME_CLASS = "HIC"

# ---------------------------------------------------------------------------- #
# SENSITIVITY MULTIPLIERS
# ---------------------------------------------------------------------------- #

PEDIATRIC_INCIDENCE_FACTORS = {
    "pediatric_incidence_plus_10_perc": 1.10,
    "pediatric_incidence_minus_10_perc": 0.90,
    "pediatric_incidence_plus_25_perc": 1.25,
    "pediatric_incidence_minus_25_perc": 0.75,
}
SMR_FACTORS = {
    "smr_plus_10_perc": 1.10,
    "smr_minus_10_perc": 0.90,
}

# ---------------------------------------------------------------------------- #
# LEVERS
# ---------------------------------------------------------------------------- #

LEVER_NAMES = {
    0: "base",
    1: "diagnosis",
    2: "basic care",
    3: "best care",
    4: "cure",
}
# Target SMRs, medians of published ranges across ages 20-50
SMR_TARGET_BASIC_CARE = 4.05  # median(3.7, 4.4)
SMR_TARGET_BEST_CARE = 2.4  # median(2.2, 2.6)
SMR_REFERENCE_AGES = np.arange(20, 51)

# ---------------------------------------------------------------------------- #
# TOLERANCES
# ---------------------------------------------------------------------------- #

CONSERVATION_TOL = 1e-12
COHORT_TOL = 1e-10
COHORT_RTOL = 1e-12

n_levers = len(LEVER_NAMES)
