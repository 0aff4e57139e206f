"""Typed result objects.

Frozen dataclasses returned by the public analysis functions:

* :class:`CVResult` — leave-one-out RMSE per model spec.  It is a
  read-only ``Mapping[ModelSpec, float]`` so callers can treat it as
  the plain spec → RMSE mapping, while the per-fold predictions and
  errors stay available for inspection.
* :class:`GoodnessOfFit` — deviance / Pearson χ² tests for one fit.
* :class:`DevianceComparison` — analysis of deviance for nested fits.
* :class:`SelectionResult` — outcome and path of a stepwise search.

All of them offer ``.to_dict()``, which returns a plain ``dict`` with
NumPy types converted to native Python, so results can be dumped to
JSON directly.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

import numpy as np

from .specs import ModelSpec

# ------------------------------------------------------------------ #
# Serialisation helper
# ------------------------------------------------------------------ #


def _numpy_to_python(obj: Any) -> Any:
    """Recursively convert NumPy scalars/arrays to Python-native types.

    ``ModelSpec`` values are replaced by their label so nested
    structures stay JSON-serialisable.
    """
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, (np.integer, np.bool_)):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, ModelSpec):
        return obj.label
    if isinstance(obj, dict):
        return {_numpy_to_python(k): _numpy_to_python(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        converted = [_numpy_to_python(item) for item in obj]
        return type(obj)(converted)
    return obj


class _ToDictMixin:
    """``to_dict()`` for result dataclasses."""

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: _numpy_to_python(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
        }


# ------------------------------------------------------------------ #
# Cross-validation
# ------------------------------------------------------------------ #


@dataclass(frozen=True, eq=False)
class CVResult(_ToDictMixin, Mapping):
    """Leave-one-out cross-validation outcome.

    Attributes:
        specs: Evaluated specs, in caller order.
        rmse: RMSE per spec.
        observed: Observed responses, in fold order.
        predictions: Held-out predicted means per spec, in fold order.
        errors: Signed errors ``observed − predicted`` per spec.
        labels: Record label held out by each fold.
    """

    specs: tuple[ModelSpec, ...]
    rmse: dict[ModelSpec, float]
    observed: np.ndarray
    predictions: dict[ModelSpec, np.ndarray] = field(repr=False)
    errors: dict[ModelSpec, np.ndarray] = field(repr=False)
    labels: tuple[Any, ...] = field(default=(), repr=False)

    # ---- Mapping protocol ------------------------------------------

    def __getitem__(self, spec: ModelSpec) -> float:
        return self.rmse[spec]

    def __iter__(self) -> Iterator[ModelSpec]:
        return iter(self.specs)

    def __len__(self) -> int:
        return len(self.specs)

    # ---- Convenience -----------------------------------------------

    @property
    def n_folds(self) -> int:
        return len(self.observed)

    def ranking(self) -> list[tuple[ModelSpec, float]]:
        """Specs sorted by ascending RMSE (ties keep caller order)."""
        return sorted(self.rmse.items(), key=lambda item: item[1])

    @property
    def best(self) -> ModelSpec:
        """The spec with the lowest RMSE."""
        return self.ranking()[0][0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "n_folds": self.n_folds,
            "rmse": _numpy_to_python(self.rmse),
            "best": self.best.label,
            "observed": _numpy_to_python(self.observed),
            "predictions": _numpy_to_python(self.predictions),
            "errors": _numpy_to_python(self.errors),
            "labels": _numpy_to_python(list(self.labels)),
        }


# ------------------------------------------------------------------ #
# Goodness of fit
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class GoodnessOfFit(_ToDictMixin):
    """Residual-deviance and Pearson χ² goodness-of-fit tests.

    Under a correctly specified Poisson model both statistics are
    approximately χ²(df_resid); small p-values indicate lack of fit,
    most often overdispersion.
    """

    family: str
    n_obs: int
    deviance: float
    df_resid: float
    deviance_p_value: float
    pearson_chi2: float
    pearson_p_value: float
    dispersion: float
    overdispersed: bool
    note: str | None = None


@dataclass(frozen=True)
class DevianceComparison(_ToDictMixin):
    """Analysis of deviance between a reduced and a full model."""

    reduced: str
    full: str
    deviance_reduced: float
    deviance_full: float
    delta_deviance: float
    delta_df: float
    test: str
    statistic: float
    p_value: float


# ------------------------------------------------------------------ #
# Stepwise selection
# ------------------------------------------------------------------ #


@dataclass(frozen=True)
class SelectionStep(_ToDictMixin):
    """One accepted move of a stepwise search."""

    action: str
    covariate: str
    criterion: float


@dataclass(frozen=True)
class SelectionResult(_ToDictMixin):
    """Outcome of :func:`~glm_crossval.selection.stepwise_select`.

    Attributes:
        spec: Selected spec (keeps the caller's family).
        criterion_name: ``"aic"`` or ``"bic"``.
        start_covariates: Covariates of the starting spec.
        start_criterion: Criterion of the starting spec.
        final_criterion: Criterion of the selected spec.
        steps: Accepted moves, in order.
    """

    spec: ModelSpec
    criterion_name: str
    start_covariates: tuple[str, ...]
    start_criterion: float
    final_criterion: float
    steps: tuple[SelectionStep, ...] = ()

    @property
    def dropped(self) -> list[str]:
        """Covariates of the start spec that were not selected."""
        return [c for c in self.start_covariates if c not in self.spec.covariates]

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["steps"] = [step.to_dict() for step in self.steps]
        return out
