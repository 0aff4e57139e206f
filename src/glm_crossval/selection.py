"""Stepwise covariate selection by information criterion.

Greedy search in the style of R's ``step()``:

* ``direction="backward"`` — starting from the full spec, try
  dropping each covariate; accept the drop that lowers the criterion
  most; repeat until no drop helps.
* ``direction="both"`` — as backward, but each round also considers
  re-adding any covariate dropped earlier.

The criterion is

    AIC = −2ℓ + 2p          BIC = −2ℓ + p·log(n)

with ℓ the Poisson log-likelihood and p the number of coefficients
(intercept included).  Quasipoisson has no likelihood, so a
Quasipoisson spec is searched under the Poisson likelihood — the two
families share coefficient estimates and therefore the same ℓ — and
the selected spec is returned with the caller's family restored.

The search is deterministic: ties are broken by covariate order in
the starting spec.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable

from ._results import SelectionResult, SelectionStep
from .dataset import Dataset
from .design import check_spec
from .fitting import FittedModel, fit_glm
from .specs import ModelSpec

logger = logging.getLogger(__name__)

_CRITERIA = ("aic", "bic")
_DIRECTIONS = ("backward", "both")


def information_criterion(fitted: FittedModel, criterion: str = "aic") -> float:
    """Return AIC or BIC of a fit with a likelihood.

    Raises:
        ValueError: If *criterion* is unknown or the fit has no
            finite log-likelihood.
    """
    criterion = criterion.lower()
    if criterion not in _CRITERIA:
        raise ValueError(f"criterion must be one of {_CRITERIA}, got {criterion!r}.")
    if not math.isfinite(fitted.llf):
        raise ValueError(
            f"{fitted.spec.label!r} has no log-likelihood; "
            "information criteria are undefined."
        )
    k = 2.0 if criterion == "aic" else math.log(fitted.n_obs)
    return -2.0 * fitted.llf + k * fitted.n_params


def stepwise_select(
    dataset: Dataset,
    spec: ModelSpec,
    *,
    criterion: str = "aic",
    direction: str = "backward",
    fitter: Callable[[Dataset, ModelSpec], FittedModel] = fit_glm,
) -> SelectionResult:
    """Select covariates of *spec* by greedy AIC/BIC search.

    Args:
        dataset: Records to fit on.
        spec: Starting (largest) spec.
        criterion: ``"aic"`` or ``"bic"``.
        direction: ``"backward"`` or ``"both"``.
        fitter: Fitting primitive, :func:`~glm_crossval.fit_glm` by
            default.

    Returns:
        A :class:`~glm_crossval.SelectionResult`.

    Raises:
        SpecificationError: If *spec* does not match *dataset*.
        FittingError: If any candidate fit fails.
        ValueError: If *criterion* or *direction* is unknown.
    """
    criterion = criterion.lower()
    if criterion not in _CRITERIA:
        raise ValueError(f"criterion must be one of {_CRITERIA}, got {criterion!r}.")
    if direction not in _DIRECTIONS:
        raise ValueError(f"direction must be one of {_DIRECTIONS}, got {direction!r}.")
    check_spec(dataset, spec)

    search_spec = spec if spec.resolved_family.has_likelihood else spec.with_family("poisson")
    start = spec.covariates
    scores: dict[tuple[str, ...], float] = {}

    def score(covariates: tuple[str, ...]) -> float:
        if covariates not in scores:
            fitted = fitter(dataset, search_spec.with_covariates(covariates))
            scores[covariates] = information_criterion(fitted, criterion)
        return scores[covariates]

    current = start
    current_score = score(current)
    start_score = current_score
    steps: list[SelectionStep] = []
    logger.debug("Stepwise %s start: %s = %.4f", direction, criterion, start_score)

    while True:
        candidates: list[tuple[str, str, tuple[str, ...]]] = [
            ("drop", c, tuple(x for x in current if x != c)) for c in current
        ]
        if direction == "both":
            candidates += [
                ("add", c, tuple(x for x in start if x in current or x == c))
                for c in start
                if c not in current
            ]
        best: tuple[str, str, tuple[str, ...]] | None = None
        best_score = current_score
        for action, covariate, covariates in candidates:
            s = score(covariates)
            if s < best_score:
                best, best_score = (action, covariate, covariates), s
        if best is None:
            break
        action, covariate, current = best
        current_score = best_score
        steps.append(SelectionStep(action=action, covariate=covariate, criterion=current_score))
        logger.debug("Stepwise %s %s: %s = %.4f", action, covariate, criterion, current_score)

    return SelectionResult(
        spec=spec.with_covariates(current),
        criterion_name=criterion,
        start_covariates=start,
        start_criterion=start_score,
        final_criterion=current_score,
        steps=tuple(steps),
    )
