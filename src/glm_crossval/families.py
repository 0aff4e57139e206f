"""Count-regression families and their resolution logic.

The ``CountFamily`` protocol describes everything the fitting
primitive needs to know about a distributional family: which
statsmodels family object to fit, how the dispersion scale is
estimated, which reference distribution the Wald statistics use, and
what response values are admissible.

Both built-in families share the log link and therefore produce the
same coefficient estimates and the same point predictions:

* ``PoissonFamily`` — Var(Y | X) = μ, dispersion fixed at 1.
* ``QuasiPoissonFamily`` — Var(Y | X) = φ·μ, with φ estimated as
  Pearson χ² / df_resid.  φ only rescales standard errors
  (SE_quasi = √φ · SE_poisson) and switches inference to the t
  distribution; it has no likelihood, so AIC/BIC are undefined.

Each concrete family is a frozen ``@dataclass`` with no mutable
state.  ``resolve_family`` maps a user-facing string (``"poisson"``,
``"quasipoisson"``) to a family instance; new families are added with
``register_family``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
import statsmodels.api as sm

from .exceptions import SpecificationError

# Dispersion above this level is reported as overdispersion.
OVERDISPERSION_THRESHOLD = 1.5


@runtime_checkable
class CountFamily(Protocol):
    """Interface that every count-regression family must implement.

    Attributes:
        name: Registry identifier (``"poisson"``, ``"quasipoisson"``).
        stat_label: Symbol of the per-coefficient Wald statistic
            (``"z"`` or ``"t"``).
        has_likelihood: Whether a log-likelihood (and therefore
            AIC/BIC) exists for the family.
        scale_method: Dispersion used for inference: a fixed value
            such as ``1.0``, or ``"X2"`` for the Pearson χ² / df_resid
            estimate.  The mean model is always fitted at unit
            dispersion.
        use_t: Whether Wald tests use the t distribution.
    """

    @property
    def name(self) -> str: ...

    @property
    def stat_label(self) -> str: ...

    @property
    def has_likelihood(self) -> bool: ...

    @property
    def scale_method(self) -> float | str: ...

    @property
    def use_t(self) -> bool: ...

    def sm_family(self) -> sm.families.Family:
        """Return the statsmodels family object used for IRLS."""
        ...

    def validate_y(self, y: np.ndarray) -> None:
        """Raise ``ValueError`` if *y* is not a valid response."""
        ...

    def dispersion_note(self, dispersion: float) -> str | None:
        """Return an advisory note for the estimated dispersion, or ``None``."""
        ...


def _validate_counts(y: np.ndarray, family_name: str) -> None:
    """Check that *y* contains non-negative integer-valued data.

    Floats that happen to be whole numbers (e.g. ``3.0``) are accepted,
    as statsmodels does; negatives, NaN and fractional values are not.
    """
    y = np.asarray(y)
    if not np.issubdtype(y.dtype, np.number):
        raise ValueError(f"{family_name} requires numeric response values.")
    if np.any(np.isnan(y)):
        raise ValueError(f"{family_name} does not accept NaN response values.")
    if np.any(y < 0):
        raise ValueError(f"{family_name} requires non-negative response values.")
    if not np.allclose(y, np.round(y)):
        raise ValueError(
            f"{family_name} requires integer-valued responses. "
            "Got non-integer values."
        )


@dataclass(frozen=True)
class PoissonFamily:
    """Poisson log-link GLM with the dispersion fixed at 1."""

    @property
    def name(self) -> str:
        return "poisson"

    @property
    def stat_label(self) -> str:
        return "z"

    @property
    def has_likelihood(self) -> bool:
        return True

    @property
    def scale_method(self) -> float | str:
        return 1.0

    @property
    def use_t(self) -> bool:
        return False

    def sm_family(self) -> sm.families.Family:
        return sm.families.Poisson()

    def validate_y(self, y: np.ndarray) -> None:
        _validate_counts(y, "PoissonFamily")

    def dispersion_note(self, dispersion: float) -> str | None:
        if np.isfinite(dispersion) and dispersion > OVERDISPERSION_THRESHOLD:
            return (
                f"Dispersion = {dispersion:.4f}: overdispersion detected "
                f"(> {OVERDISPERSION_THRESHOLD}). Standard errors are too "
                "small; consider family='quasipoisson'."
            )
        return None


@dataclass(frozen=True)
class QuasiPoissonFamily:
    """Quasi-Poisson GLM: Poisson mean model with estimated dispersion.

    The dispersion φ is the Pearson χ² statistic divided by the
    residual degrees of freedom.  Coefficients equal the Poisson fit;
    standard errors are multiplied by √φ and Wald tests use t.
    """

    @property
    def name(self) -> str:
        return "quasipoisson"

    @property
    def stat_label(self) -> str:
        return "t"

    @property
    def has_likelihood(self) -> bool:
        return False

    @property
    def scale_method(self) -> float | str:
        return "X2"

    @property
    def use_t(self) -> bool:
        return True

    def sm_family(self) -> sm.families.Family:
        return sm.families.Poisson()

    def validate_y(self, y: np.ndarray) -> None:
        _validate_counts(y, "QuasiPoissonFamily")

    def dispersion_note(self, dispersion: float) -> str | None:
        if np.isfinite(dispersion) and dispersion < 1.0:
            return (
                f"Dispersion = {dispersion:.4f}: underdispersion; quasi "
                "standard errors are narrower than Poisson ones."
            )
        return None


# ------------------------------------------------------------------ #
# Registry
# ------------------------------------------------------------------ #

_FAMILIES: dict[str, type] = {}


def _normalise(name: str) -> str:
    return str(name).strip().lower().replace("-", "").replace("_", "")


def register_family(name: str, cls: type) -> None:
    """Register a family class under *name*.

    Args:
        name: Registry key used in ``ModelSpec.family``.
        cls: A class whose instances satisfy ``CountFamily``.

    Raises:
        TypeError: If instances of *cls* do not implement the protocol.
    """
    if not isinstance(cls(), CountFamily):
        raise TypeError(f"{cls.__name__} does not implement the CountFamily protocol.")
    _FAMILIES[_normalise(name)] = cls


def available_families() -> list[str]:
    """Return the sorted registry keys."""
    return sorted(_FAMILIES)


def resolve_family(family: str | CountFamily) -> CountFamily:
    """Resolve a family name (or pass through an instance).

    Names are matched case-insensitively; ``"quasi-poisson"`` and
    ``"quasi_poisson"`` are accepted spellings of ``"quasipoisson"``.

    Raises:
        SpecificationError: If *family* is not a registered name.
    """
    if isinstance(family, CountFamily):
        return family
    key = _normalise(family)
    if key not in _FAMILIES:
        available = ", ".join(available_families()) or "(none registered)"
        raise SpecificationError(
            f"Unknown family {family!r}.  Available families: {available}."
        )
    instance: CountFamily = _FAMILIES[key]()
    return instance


register_family("poisson", PoissonFamily)
register_family("quasipoisson", QuasiPoissonFamily)
