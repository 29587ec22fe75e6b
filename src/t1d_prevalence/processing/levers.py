# levers.py
"""
Policy levers: counterfactual input matrices for diagnosis, basic care, best
care and cure. Levers are cumulative and act only on their active years.
"""
import logging
from typing import Tuple

import numpy as np

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.configs.lever import Lever, SmrTarget
from t1d_prevalence.helpers.common_functions import age_mask, year_mask
from t1d_prevalence.model.errors import DegenerateRateError
from t1d_prevalence.model.inputs import InputMatrices


# ---------- helpers ----------
def _full_diagnosis(
    matrices: InputMatrices, rows: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Everyone is diagnosed: onset deaths become incident cases."""
    dDx = matrices.dDx[rows]
    if np.any(dDx >= 1):
        bad = matrices.years[rows][np.argwhere(dDx >= 1)[0][0]]
        raise DegenerateRateError(
            f"dDx >= 1 in {bad}; can't gross up incidence for {matrices}"
        )
    i_new = matrices.i.copy()
    i_new[rows] = matrices.i[rows] / (1 - dDx)
    dDx_new = matrices.dDx.copy()
    dDx_new[rows] = 0.0
    return i_new, dDx_new


def rescale_smr(
    smr: np.ndarray, target: float, rows: np.ndarray, cap_at_one: bool = True
) -> np.ndarray:
    """
    Scale each year's SMRs so that their mean over ages 20-50 hits `target`.

    With cap_at_one the ratio never exceeds 1, so mortality is never made
    worse. Cells that would drop below an SMR of 1 are held at min(smr, 1):
    T1D mortality never falls below background.
    """
    ref = age_mask(c.AGES, c.SMR_REFERENCE_AGES)
    with np.errstate(divide="ignore"):
        ratio = target / smr[:, ref].mean(axis=1)
    if cap_at_one:
        ratio = np.minimum(ratio, 1.0)
    adjusted = smr * ratio[:, None]
    adjusted = np.where(adjusted < 1, np.minimum(smr, 1.0), adjusted)

    out = smr.copy()
    out[rows] = adjusted[rows]
    return out


# ---------- levers ----------
def apply_lever(matrices: InputMatrices, lever: Lever) -> InputMatrices:
    """
    Return new input matrices with `lever` applied:
      1 full diagnosis: no deaths on diagnosis, incidence grossed up
      2 basic care:     non-minimal-care SMR towards 4.05, everyone in non-minimal care
      3 best care:      non-minimal-care SMR towards 2.4, everyone in non-minimal care
      4 cure:           SMR of 1 for both strata, no excess mortality
    Level 0 returns the inputs as they are.
    """
    if lever.is_noop:
        return matrices

    years = matrices.years
    rows = year_mask(years, lever.year_range(years))
    logging.info("Applying lever %s to %s (%d years)", lever, matrices, rows.sum())

    i_new, dDx_new = _full_diagnosis(matrices, rows)
    smr_n_new = matrices.smr_n
    smr_m_new = matrices.smr_m
    percent_n_new = matrices.percent_n

    if lever.level >= 2:
        # insulin, strips, education
        target = c.SMR_TARGET_BEST_CARE if lever.level >= 3 else c.SMR_TARGET_BASIC_CARE
        smr_n_new = rescale_smr(matrices.smr_n, target, rows, cap_at_one=True)
        percent_n_new = matrices.percent_n.copy()
        percent_n_new[rows] = 1.0

    if lever.level >= 4:
        smr_n_new = matrices.smr_n.copy()
        smr_n_new[rows] = 1.0
        smr_m_new = matrices.smr_m.copy()
        smr_m_new[rows] = 1.0

    return matrices.with_updates(
        i=i_new,
        dDx=dDx_new,
        smr_n=smr_n_new,
        smr_m=smr_m_new,
        percent_n=percent_n_new,
    )


def apply_smr_target(matrices: InputMatrices, target: SmrTarget) -> InputMatrices:
    """
    Full diagnosis plus non-minimal care rescaled towards the middle of an
    explicit SMR band. Unlike the care levers the ratio is not capped, so a
    band above current SMRs raises mortality.
    """
    years = matrices.years
    rows = year_mask(years, target.year_range(years))
    logging.info("Applying %s to %s", target, matrices)

    i_new, dDx_new = _full_diagnosis(matrices, rows)
    smr_n_new = rescale_smr(matrices.smr_n, target.midpoint, rows, cap_at_one=False)
    percent_n_new = matrices.percent_n.copy()
    percent_n_new[rows] = 1.0

    return matrices.with_updates(
        i=i_new,
        dDx=dDx_new,
        smr_n=smr_n_new,
        percent_n=percent_n_new,
    )


def lever_inputs(matrices: InputMatrices, levers) -> dict:
    """Input matrices for each lever, keyed by lever name."""
    return {lever.name: apply_lever(matrices, lever) for lever in levers}
