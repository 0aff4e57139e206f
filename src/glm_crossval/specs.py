"""Model specifications.

A :class:`ModelSpec` is pure data: the response name, an ordered
tuple of covariate names and a family tag.  Variant analyses (Poisson
vs. Quasipoisson, full vs. reduced covariate sets) are expressed as
different specs run through the same ``fit_glm`` / ``evaluate``
calls rather than as separate code paths.

Specs are frozen and hashable so they can key the RMSE mapping
returned by cross-validation.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from .exceptions import SpecificationError
from .families import CountFamily, resolve_family


@dataclass(frozen=True)
class ModelSpec:
    """Response, ordered covariates and distributional family.

    Attributes:
        response: Name of the count response column.
        covariates: Ordered covariate names.  An empty tuple is the
            intercept-only model.
        family: Registered family name (``"poisson"`` or
            ``"quasipoisson"``).
        name: Optional display name; defaults to the formula string.
    """

    response: str
    covariates: tuple[str, ...] = ()
    family: str = "poisson"
    name: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.covariates, str):
            raise SpecificationError(
                "covariates must be a sequence of names, not a single string "
                f"({self.covariates!r})."
            )
        covariates = tuple(str(c) for c in self.covariates)
        duplicates = sorted({c for c in covariates if covariates.count(c) > 1})
        if duplicates:
            raise SpecificationError(f"Duplicate covariates in spec: {duplicates}.")
        if self.response in covariates:
            raise SpecificationError(
                f"Response {self.response!r} cannot also be a covariate."
            )
        object.__setattr__(self, "covariates", covariates)
        # Normalise the tag so "Quasi-Poisson" and "quasipoisson" compare equal.
        object.__setattr__(self, "family", self.resolved_family.name)

    @property
    def resolved_family(self) -> CountFamily:
        return resolve_family(self.family)

    @property
    def formula(self) -> str:
        rhs = " + ".join(self.covariates) if self.covariates else "1"
        return f"{self.response} ~ {rhs}"

    @property
    def label(self) -> str:
        return self.name if self.name else f"{self.formula} ({self.family})"

    def with_covariates(self, covariates: Iterable[str]) -> ModelSpec:
        """Return a copy with *covariates* replacing the current set."""
        return replace(self, covariates=tuple(covariates), name=None)

    def without_covariate(self, covariate: str) -> ModelSpec:
        """Return a copy with *covariate* removed."""
        if covariate not in self.covariates:
            raise SpecificationError(
                f"{covariate!r} is not a covariate of {self.formula!r}."
            )
        return self.with_covariates(c for c in self.covariates if c != covariate)

    def with_family(self, family: str) -> ModelSpec:
        """Return a copy fitted under a different family."""
        return replace(self, family=family)
