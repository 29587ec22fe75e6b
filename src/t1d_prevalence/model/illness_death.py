import logging
from time import monotonic
from typing import Optional

import numpy as np

from t1d_prevalence.configs import global_configs as c
from t1d_prevalence.configs.run_config import RunConfig
from t1d_prevalence.helpers.common_functions import check_matrix, check_years, shift_age
from t1d_prevalence.model.errors import DegenerateRateError
from t1d_prevalence.model.inputs import InputMatrices
from t1d_prevalence.model.results import PrevalenceResult


class IllnessDeathModel:

    def __init__(
        self,
        i,
        qB,
        qT1D_n,
        qT1D_m,
        qT1D_percent_n,
        dDx,
        years,
        config: Optional[RunConfig] = None,
        country: Optional[str] = None,
        half_cycle: bool = True,
    ):
        """
        Arguments: year x age rate matrices, each shaped (len(years), MAX_AGE).
            i:               observed incidence (excludes deaths on diagnosis)
            qB:              background mortality from life tables
            qT1D_n, qT1D_m:  T1D mortality, non-minimal / minimal care
            qT1D_percent_n:  share of prevalent population in non-minimal care
            dDx:             death on diagnosis rate
            years:           consecutive years, including the warm-up

        Compartments, as a proportion of each annual birth cohort:
        S:  susceptible (no T1D)
        P:  prevalent (T1D)
        D:  dead (absorbing)

        Cohort tracking (config.track_days_lost), year x age x onset age:
        Pcohorts:   P broken out by age at onset
        Icohorts:   incidence by onset age (on the age == onset age diagonal)
        PDcohorts:  T1D deaths by onset age

        Notes:
        - Row t holds the population at the start of year t. A step moves every
          cohort one year older; age 0 is refilled fully susceptible.
        - The last age bin is closed, nobody is aged past MAX_AGE - 1.
        """
        self.config = config or RunConfig()
        self.country = country
        self.half_cycle = half_cycle

        self.years = check_years(years, min_length=2)
        n = len(self.years)
        self.i = check_matrix("i", i, n)
        self.qB = check_matrix("qB", qB, n)
        self.qT1D_n = check_matrix("qT1D_n", qT1D_n, n)
        self.qT1D_m = check_matrix("qT1D_m", qT1D_m, n)
        self.qT1D_percent_n = check_matrix("qT1D_percent_n", qT1D_percent_n, n)
        self.dDx = check_matrix("dDx", dDx, n)
        if np.any(self.dDx >= 1):
            bad = np.argwhere(self.dDx >= 1)[0]
            raise DegenerateRateError(
                f"dDx >= 1 at year {self.years[bad[0]]}, age {bad[1]}; "
                f"cap it below 1 (eg {c.DDX_CAP})"
            )
        self.cycles = n

        # Main compartments
        self.S = np.zeros((n, c.MAX_AGE), dtype=np.float64)
        self.P = np.zeros_like(self.S)
        self.D = np.zeros_like(self.S)

        # Cohorts by onset age
        self.Pcohorts = None
        self.Icohorts = None
        self.PDcohorts = None
        if self.config.track_days_lost:
            shape = (n, c.MAX_AGE, c.MAX_AGE)
            self.Pcohorts = np.zeros(shape, dtype=np.float64)
            self.Icohorts = np.zeros(shape, dtype=np.float64)
            self.PDcohorts = np.zeros(shape, dtype=np.float64)

    @classmethod
    def from_inputs(
        cls, inputs: InputMatrices, config: Optional[RunConfig] = None, **kwargs
    ) -> "IllnessDeathModel":
        qT1D_n, qT1D_m = inputs.t1d_mortality()
        return cls(
            inputs.i,
            inputs.qB,
            qT1D_n,
            qT1D_m,
            inputs.percent_n,
            inputs.dDx,
            inputs.years,
            config=config,
            country=kwargs.pop("country", inputs.country),
            **kwargs,
        )

    def __str__(self) -> str:
        label = self.country or "cohort"
        return f"{label} {self.years[0]}-{self.years[-1]} ({self.config})"

    # ---------- helpers ----------
    def _blended_mortality(self, t: int) -> np.ndarray:
        """T1D mortality of the prevalent pool in year t, strata mixed."""
        pn = self.qT1D_percent_n[t]
        return pn * self.qT1D_n[t] + (1 - pn) * self.qT1D_m[t]

    def _step_cohorts(self, t: int, blended: np.ndarray) -> None:
        """
        Advance the onset-age breakdown of P from year t to t+1.
        Only the age axis moves; onset age stays where it is.
        """
        self.Icohorts[t] = np.diag(self.i[t] * self.S[t])
        self.PDcohorts[t] = self.Pcohorts[t] * blended[:, None]

        # last year's onsets, now a year older (onset age unchanged)
        incident = shift_age(self.Icohorts[t], 0.0)
        survivors = shift_age(self.Pcohorts[t], 0.0) * (1 - blended)[:, None]
        self.Pcohorts[t + 1] = survivors + incident

    def _excess_mortality(self) -> np.ndarray:
        """T1D-cause deaths over and above background mortality."""
        pn = self.qT1D_percent_n
        if self.config.uses_final_year_mix:
            # Calibration run with levers from the first year: the final year's
            # stratum mix is used for every year.
            logging.info(
                "%s: excess mortality uses %d stratum mix for all years",
                self,
                self.years[-1],
            )
            pn = np.broadcast_to(pn[-1], pn.shape)
        return (self.qT1D_n - self.qB) * self.P * pn + (
            self.qT1D_m - self.qB
        ) * self.P * (1 - pn)

    def _check_conservation(self) -> None:
        total = self.S + self.P + self.D
        drift = np.abs(total - 1.0).max()
        if drift > c.CONSERVATION_TOL:
            logging.warning(f"Mass not conserved in {self}: max drift {drift:.3e}")

    # ---------- main run ----------
    def run(self) -> PrevalenceResult:
        """
        Populate S, P, D year by year, compute flows from the unshifted rows,
        then apply the half-cycle adjustment.
        """
        start_time = monotonic()
        logging.info("Running %s ...", self)

        # incidence flows are reflected the following year, one year older
        i_shift = np.zeros_like(self.i)
        i_shift[:, 1:] = self.i[:, :-1]
        i_all = self.i / (1 - self.dDx)  # includes deaths at onset
        i_all_shift = i_shift / (1 - self.dDx)

        # Everyone starts susceptible
        self.S[0] = 1.0

        Sshift = np.empty(c.MAX_AGE)
        Pshift = np.empty(c.MAX_AGE)
        Dshift = np.empty(c.MAX_AGE)
        for t in range(self.cycles - 1):
            shift_age(self.S[t], 1.0, out=Sshift)
            shift_age(self.P[t], 0.0, out=Pshift)
            shift_age(self.D[t], 0.0, out=Dshift)

            blended = self._blended_mortality(t)

            # susceptible
            self.S[t + 1] = Sshift * (1 - i_all_shift[t]) * (1 - self.qB[t])

            # prevalent, both care strata
            self.P[t + 1] = Pshift * (1 - blended) + i_shift[t] * Sshift

            if self.config.track_days_lost:
                self._step_cohorts(t, blended)

            # deaths: onset, T1D, background of susceptible
            self.D[t + 1] = (
                Dshift
                + i_all_shift[t] * self.dDx[t] * Sshift
                + blended * Pshift
                + Sshift * self.qB[t] * (1 - i_all_shift[t])
            )

        self._check_conservation()

        # final year cohort flows, same as in the loop
        if self.config.track_days_lost:
            t = self.cycles - 1
            self.Icohorts[t] = np.diag(self.i[t] * self.S[t])
            self.PDcohorts[t] = (
                self.Pcohorts[t] * self._blended_mortality(t)[:, None]
            )

        # flows: based on unshifted incidence
        I = self.i * self.S
        DDx = i_all * self.dDx * self.S
        DT1D = self._excess_mortality()
        DBGP = self.P * self.qB
        DBGS = self.S * self.qB * (1 - i_all)

        S, P, D = self.S.copy(), self.P.copy(), self.D.copy()
        Pcohorts = Icohorts = PDcohorts = None
        if self.config.track_days_lost:
            Pcohorts = self.Pcohorts.copy()
            Icohorts = self.Icohorts.copy()
            PDcohorts = self.PDcohorts.copy()
        if self.half_cycle:
            # on average half of each flow happens part-way through its year
            S -= 0.5 * (I + DDx + DBGS)
            P += 0.5 * I - 0.5 * (DT1D + DBGP)
            D += 0.5 * (DDx + DBGS + DT1D + DBGP)
            if Pcohorts is not None:
                Pcohorts += 0.5 * Icohorts - 0.5 * PDcohorts

        elapsed = monotonic() - start_time
        logging.info("Finished %s in %.2fs", self, elapsed)

        return PrevalenceResult(
            S=S,
            P=P,
            D=D,
            I=I,
            DDx=DDx,
            DT1D=DT1D,
            DBGP=DBGP,
            DBGS=DBGS,
            years=self.years.copy(),
            Pcohorts=Pcohorts,
            Icohorts=Icohorts,
            PDcohorts=PDcohorts,
            country=self.country,
            elapsed=elapsed,
        )


def calculate_prevalence(
    i,
    qB,
    qT1D_n,
    qT1D_m,
    qT1D_percent_n,
    dDx,
    years,
    config: Optional[RunConfig] = None,
    country: Optional[str] = None,
    half_cycle: bool = True,
) -> PrevalenceResult:
    """Run the illness-death model once and return its result bundle."""
    model = IllnessDeathModel(
        i,
        qB,
        qT1D_n,
        qT1D_m,
        qT1D_percent_n,
        dDx,
        years,
        config=config,
        country=country,
        half_cycle=half_cycle,
    )
    return model.run()


def run_inputs(
    inputs: InputMatrices, config: Optional[RunConfig] = None, **kwargs
) -> PrevalenceResult:
    """Run the illness-death model on an InputMatrices bundle."""
    return IllnessDeathModel.from_inputs(inputs, config, **kwargs).run()
