import numpy as np

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.model.errors import InputShapeError


def shift_age(row, boundary=0.0, out=None):
    """
    Move every cohort one year older along the first (age) axis.

    row[0..MAX_AGE-2] lands in out[1..MAX_AGE-1] and `boundary` is written to
    out[0]. The terminal age bin is closed: whatever sat in age MAX_AGE-1 drops
    off. Works on an age row (MAX_AGE,) or an age x onset-age slice
    (MAX_AGE, MAX_AGE); for the latter only the age axis moves.
    """
    if out is None:
        out = np.empty_like(row, dtype=np.float64)
    out[1:] = row[:-1]
    out[0] = boundary
    return out


def mortality_from_smr(qB, smr):
    """
    Disease mortality as background mortality scaled by an SMR.
    Capped at 1 so it stays a valid annual probability.
    """
    return np.minimum(np.asarray(qB, dtype=np.float64) * smr, 1.0)


def active_years(years, start_year, end_year=None) -> np.ndarray:
    """Years of `years` in start_year..end_year; end_year None means the last one."""
    years = np.asarray(years)
    stop = years.max() if end_year is None else end_year
    return years[(years >= start_year) & (years <= stop)]


def year_mask(years, year_range) -> np.ndarray:
    """Boolean mask over `years` selecting rows in `year_range`."""
    return np.isin(np.asarray(years), np.asarray(year_range))


def age_mask(ages, ages_in) -> np.ndarray:
    return np.isin(np.asarray(ages), np.asarray(ages_in))


def check_years(years, min_length=1) -> np.ndarray:
    """Years must be consecutive integers, strictly increasing."""
    years = np.asarray(years)
    if years.ndim != 1 or len(years) < min_length:
        raise InputShapeError(
            f"years must be a 1-D vector with at least {min_length} entries"
        )
    if not np.issubdtype(years.dtype, np.integer):
        if not np.all(np.mod(years, 1) == 0):
            raise InputShapeError("years must be integers")
        years = years.astype(int)
    if len(years) > 1 and not np.all(np.diff(years) == 1):
        raise InputShapeError("years must be strictly consecutive")
    return years


def check_matrix(name, m, n_years) -> np.ndarray:
    """Rate/state matrix of shape (n_years, MAX_AGE) with finite values."""
    try:
        m = np.array(m, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InputShapeError(f"{name} is not numeric") from e
    if m.shape != (n_years, c.MAX_AGE):
        raise InputShapeError(
            f"{name} has shape {m.shape}, expected {(n_years, c.MAX_AGE)}"
        )
    if not np.all(np.isfinite(m)):
        raise InputShapeError(f"{name} contains non-finite values")
    return m
