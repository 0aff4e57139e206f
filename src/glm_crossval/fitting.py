"""The GLM fitting primitive.

:func:`fit_glm` is the single entry point through which every model
in the package is estimated: the per-fold refits of
cross-validation, the candidate models of stepwise selection and the
full-data fits behind goodness-of-fit and influence diagnostics.

Estimation is delegated entirely to ``statsmodels.api.GLM`` (IRLS)
with a Poisson log-link family and the dispersion fixed at 1, for
every family.  The family object of the spec then decides how the
dispersion enters inference:

    Poisson:       scale fixed at 1, Wald z statistics.
    Quasipoisson:  scale φ = Pearson χ² / df_resid (NaN when
                   df_resid ≤ 0), SE multiplied by √φ, Wald t
                   statistics on df_resid.  Coefficients and fitted
                   means are those of the Poisson fit.

The result is wrapped in an immutable :class:`FittedModel` that
exposes the quantities the rest of the package reads (coefficients,
fitted means, deviance, residual df, dispersion, information
criteria) plus :meth:`FittedModel.predict` for held-out records.

Failure policy
~~~~~~~~~~~~~~
A fit whose IRLS loop stops at ``maxiter`` without converging is an
error, not a warning: :class:`~glm_crossval.exceptions.FittingError`
is raised so that a cross-validation run never mixes converged and
non-converged folds.  statsmodels' own warnings are silenced around
the fit (see :func:`suppress_fit_warnings`) for the same reason; the
outcome is reported once, through the exception.
"""

from __future__ import annotations

import logging
import threading
import warnings
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
import statsmodels.api as sm
from scipy import stats
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning as SmConvergenceWarning,
)
from statsmodels.tools.sm_exceptions import (
    PerfectSeparationWarning,
)

from ._config import get_maxiter
from .dataset import Dataset
from .design import design_matrix
from .exceptions import FittingError
from .families import CountFamily
from .specs import ModelSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FittedModel:
    """Immutable summary of one fitted count GLM.

    Attributes:
        spec: The spec that was fitted.
        params: Coefficients (``Intercept`` first), indexed by design
            column name.
        bse: Standard errors (scaled by √φ for quasi families).
        pvalues: Two-sided Wald p-values (z or t reference).
        fitted_values: Fitted means μ̂ on the response scale, indexed
            by record label.
        deviance: Residual deviance 2·[ℓ(saturated) − ℓ(model)].
        null_deviance: Deviance of the intercept-only model.
        pearson_chi2: Σ (y − μ̂)² / μ̂.
        df_resid: Residual degrees of freedom.
        df_model: Number of non-intercept coefficients.
        scale: Dispersion used for inference (1 for Poisson).
        llf: Log-likelihood; NaN for families without one.
        aic: Akaike information criterion; NaN without a likelihood.
        bic: Bayesian information criterion; NaN without a likelihood.
        n_obs: Number of records used in the fit.
        converged: IRLS convergence flag (always ``True`` for
            instances returned by :func:`fit_glm`).
        results: The underlying statsmodels results wrapper, kept for
            influence diagnostics.
    """

    spec: ModelSpec
    params: pd.Series
    bse: pd.Series
    pvalues: pd.Series
    fitted_values: pd.Series
    deviance: float
    null_deviance: float
    pearson_chi2: float
    df_resid: float
    df_model: float
    scale: float
    llf: float
    aic: float
    bic: float
    n_obs: int
    converged: bool
    results: Any = field(default=None, repr=False, compare=False)

    @property
    def family(self) -> CountFamily:
        return self.spec.resolved_family

    @property
    def design_columns(self) -> list[str]:
        return list(self.params.index)

    @property
    def n_params(self) -> int:
        return len(self.params)

    @property
    def coefs(self) -> pd.Series:
        """Slope coefficients (intercept excluded)."""
        return self.params.iloc[1:]

    def predict(self, dataset: Dataset) -> np.ndarray:
        """Predicted conditional means for every record of *dataset*.

        The linear predictor η = Xβ̂ is mapped through the inverse log
        link, so the values are on the count scale.  The dispersion
        does not enter the prediction.
        """
        X = design_matrix(dataset, self.spec)
        if list(X.columns) != self.design_columns:
            raise FittingError(
                f"Design columns {list(X.columns)} do not match the fitted "
                f"columns {self.design_columns}."
            )
        eta = X.to_numpy() @ self.params.to_numpy()
        return np.asarray(self.family.sm_family().link.inverse(eta), dtype=float)


# ------------------------------------------------------------------ #
# Warning suppression
# ------------------------------------------------------------------ #

# Number of active ``suppress_fit_warnings`` blocks.  While positive,
# the ignore filters are already installed by the thread that opened
# the block, and fits running in worker threads must not touch the
# process-global filter list themselves.
_suppress_depth = 0
_suppress_lock = threading.Lock()


@contextmanager
def suppress_fit_warnings() -> Iterator[None]:
    """Silence statsmodels fit warnings for the duration of the block.

    ``warnings.catch_warnings`` swaps a process-global filter list and
    is not thread-safe, so callers that run fits on a thread pool open
    this block once, in the submitting thread, around the whole pool.
    :func:`fit_glm` calls made while a block is active skip their own
    ``catch_warnings``.
    """
    global _suppress_depth
    with warnings.catch_warnings():
        warnings.filterwarnings("ignore", category=SmConvergenceWarning)
        warnings.filterwarnings("ignore", category=PerfectSeparationWarning)
        warnings.filterwarnings("ignore", category=RuntimeWarning)
        with _suppress_lock:
            _suppress_depth += 1
        try:
            yield
        finally:
            with _suppress_lock:
                _suppress_depth -= 1


# ------------------------------------------------------------------ #
# Dispersion-adjusted inference
# ------------------------------------------------------------------ #


def _dispersion(family: CountFamily, pearson_chi2: float, df_resid: float) -> float:
    """Dispersion φ used for inference; NaN when it cannot be estimated."""
    if family.scale_method == "X2":
        return pearson_chi2 / df_resid if df_resid > 0 else float("nan")
    return float(family.scale_method)


def _wald(
    family: CountFamily,
    params: np.ndarray,
    bse_unit: np.ndarray,
    scale: float,
    df_resid: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Standard errors and two-sided p-values under dispersion *scale*.

    *bse_unit* are the standard errors of the scale-1 (Poisson) fit;
    a dispersion φ multiplies them by √φ.
    """
    with np.errstate(invalid="ignore", divide="ignore"):
        bse = bse_unit * np.sqrt(scale)
        stat = np.abs(params / bse)
    if family.use_t:
        if df_resid > 0:
            pvalues = 2.0 * stats.t.sf(stat, df_resid)
        else:
            pvalues = np.full_like(stat, np.nan)
    else:
        pvalues = 2.0 * stats.norm.sf(stat)
    return bse, pvalues


# ------------------------------------------------------------------ #
# Fitting
# ------------------------------------------------------------------ #


def fit_glm(
    dataset: Dataset,
    spec: ModelSpec,
    *,
    maxiter: int | None = None,
) -> FittedModel:
    """Fit *spec* to *dataset* by IRLS.

    The mean model is always fitted with the dispersion fixed at 1, so
    coefficients and fitted means do not depend on the family.  The
    family's dispersion is applied afterwards to the standard errors
    and p-values only.

    Args:
        dataset: Records to fit on.
        spec: Response, covariates and family.
        maxiter: IRLS iteration cap; defaults to
            :func:`~glm_crossval.get_maxiter`.

    Returns:
        A converged :class:`FittedModel`.

    Raises:
        SpecificationError: If *spec* does not match *dataset*.
        FittingError: If IRLS does not converge or statsmodels fails.
    """
    if _suppress_depth:
        return _fit_glm(dataset, spec, maxiter=maxiter)
    with suppress_fit_warnings():
        return _fit_glm(dataset, spec, maxiter=maxiter)


def _fit_glm(
    dataset: Dataset,
    spec: ModelSpec,
    *,
    maxiter: int | None,
) -> FittedModel:
    family = spec.resolved_family
    X = design_matrix(dataset, spec)
    y = dataset.response_values
    if maxiter is None:
        maxiter = get_maxiter()

    try:
        res = sm.GLM(y, X, family=family.sm_family()).fit(maxiter=maxiter, scale=1.0)
    except (ValueError, np.linalg.LinAlgError, FloatingPointError, OverflowError) as exc:
        raise FittingError(
            f"Fitting {spec.label!r} on {dataset.n_records} records failed: {exc}"
        ) from exc

    if not res.converged:
        raise FittingError(
            f"IRLS did not converge for {spec.label!r} on {dataset.n_records} "
            f"records within {maxiter} iterations."
        )

    params = np.asarray(res.params, dtype=float)
    pearson_chi2 = float(res.pearson_chi2)
    df_resid = float(res.df_resid)
    scale = _dispersion(family, pearson_chi2, df_resid)
    if scale != 1.0 or family.use_t:
        bse, pvalues = _wald(family, params, np.asarray(res.bse), scale, df_resid)
    else:
        bse, pvalues = np.asarray(res.bse), np.asarray(res.pvalues)

    if family.has_likelihood:
        llf, aic, bic = float(res.llf), float(res.aic), float(res.bic_llf)
    else:
        llf = aic = bic = float("nan")

    fitted = FittedModel(
        spec=spec,
        params=pd.Series(params, index=X.columns),
        bse=pd.Series(bse, index=X.columns),
        pvalues=pd.Series(pvalues, index=X.columns),
        fitted_values=pd.Series(np.asarray(res.fittedvalues), index=X.index),
        deviance=float(res.deviance),
        null_deviance=float(res.null_deviance),
        pearson_chi2=pearson_chi2,
        df_resid=df_resid,
        df_model=float(res.df_model),
        scale=scale,
        llf=llf,
        aic=aic,
        bic=bic,
        n_obs=int(res.nobs),
        converged=True,
        results=res,
    )

    logger.debug(
        "Fitted %s (n=%d, deviance=%.4f, scale=%.4f)",
        spec.label,
        dataset.n_records,
        fitted.deviance,
        fitted.scale,
    )
    return fitted
