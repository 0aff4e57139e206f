"""Goodness-of-fit tests and analysis of deviance.

Two questions come up after every count-regression fit:

1. **Does the model fit at all?**  Under a correctly specified
   Poisson model the residual deviance D and the Pearson statistic
   X² = Σ (y − μ̂)² / μ̂ are both approximately χ²(n − p).  Their
   upper-tail probabilities are the classical goodness-of-fit
   p-values; values near zero indicate lack of fit, most commonly
   overdispersion (variance larger than the mean).

   The dispersion estimate φ̂ = X² / (n − p) quantifies that excess.
   φ̂ ≈ 1 is Poisson-consistent; φ̂ > 1.5 is flagged, and is the usual
   reason to refit as Quasipoisson.

2. **Does a larger model fit significantly better?**  For nested fits
   on the same records the deviance drop ΔD = D_reduced − D_full is
   compared with

       Poisson:       ΔD ~ χ²(Δdf)
       Quasipoisson:  F = (ΔD / Δdf) / φ̂_full ~ F(Δdf, df_full)

   The F form accounts for the estimated dispersion, exactly as
   ``anova(..., test = "F")`` does for quasi families.

The χ² and F tail probabilities come from ``scipy.stats``.
"""

from __future__ import annotations

import numpy as np
from scipy import stats

from ._results import DevianceComparison, GoodnessOfFit
from .exceptions import SpecificationError
from .families import OVERDISPERSION_THRESHOLD
from .fitting import FittedModel


def chi2_upper_tail(statistic: float, df: float) -> float:
    """P(χ²(df) ≥ statistic); NaN when *df* is not positive."""
    if not df > 0:
        return float("nan")
    return float(stats.chi2.sf(statistic, df))


def goodness_of_fit(fitted: FittedModel) -> GoodnessOfFit:
    """Deviance and Pearson χ² goodness-of-fit tests for *fitted*.

    The tests are the same for both families: the Quasipoisson family
    reuses the Poisson mean model, and the tests ask whether that
    mean model with Poisson variance is adequate.
    """
    df = fitted.df_resid
    dispersion = fitted.pearson_chi2 / df if df > 0 else float("nan")
    return GoodnessOfFit(
        family=fitted.family.name,
        n_obs=fitted.n_obs,
        deviance=fitted.deviance,
        df_resid=df,
        deviance_p_value=chi2_upper_tail(fitted.deviance, df),
        pearson_chi2=fitted.pearson_chi2,
        pearson_p_value=chi2_upper_tail(fitted.pearson_chi2, df),
        dispersion=dispersion,
        overdispersed=bool(np.isfinite(dispersion) and dispersion > OVERDISPERSION_THRESHOLD),
        note=fitted.family.dispersion_note(dispersion),
    )


def compare_nested(reduced: FittedModel, full: FittedModel) -> DevianceComparison:
    """Analysis of deviance between two nested fits.

    Args:
        reduced: Fit of the smaller model.
        full: Fit of the larger model; its covariates must include all
            of *reduced*'s and both must share response, family and
            record count.

    Returns:
        A :class:`~glm_crossval.DevianceComparison` with a χ² test
        (Poisson) or F test (Quasipoisson).

    Raises:
        SpecificationError: If the models are not nested or were fit
            on different data.
    """
    r_spec, f_spec = reduced.spec, full.spec
    if r_spec.response != f_spec.response:
        raise SpecificationError("Nested models must share the response.")
    if r_spec.family != f_spec.family:
        raise SpecificationError(
            f"Nested models must share the family, got {r_spec.family!r} "
            f"and {f_spec.family!r}."
        )
    if not set(r_spec.covariates) < set(f_spec.covariates):
        raise SpecificationError(
            f"{r_spec.formula!r} is not nested in {f_spec.formula!r}."
        )
    if reduced.n_obs != full.n_obs:
        raise SpecificationError(
            f"Models were fit on different record counts "
            f"({reduced.n_obs} vs {full.n_obs})."
        )

    delta_dev = reduced.deviance - full.deviance
    delta_df = reduced.df_resid - full.df_resid

    if full.family.has_likelihood:
        test = "chi2"
        statistic = delta_dev
        p_value = chi2_upper_tail(delta_dev, delta_df)
    else:
        test = "F"
        if delta_df > 0 and full.df_resid > 0 and full.scale > 0:
            statistic = (delta_dev / delta_df) / full.scale
            p_value = float(stats.f.sf(statistic, delta_df, full.df_resid))
        else:
            statistic = p_value = float("nan")

    return DevianceComparison(
        reduced=r_spec.label,
        full=f_spec.label,
        deviance_reduced=reduced.deviance,
        deviance_full=full.deviance,
        delta_deviance=delta_dev,
        delta_df=delta_df,
        test=test,
        statistic=float(statistic),
        p_value=float(p_value),
    )
