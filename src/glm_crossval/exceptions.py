"""Exception hierarchy for the glm_crossval package.

Every error raised by the package derives from
:class:`CrossValidationError` so callers can catch the whole family
with a single ``except`` clause.  The concrete classes additionally
inherit from the matching built-in (``ValueError`` / ``RuntimeError``)
so that code written against plain Python exceptions keeps working.

There is no partial-result mode: any fold-level failure aborts the
whole evaluation and surfaces as one of these exceptions, with the
underlying statsmodels / NumPy error chained as ``__cause__``.
"""

from __future__ import annotations


class CrossValidationError(Exception):
    """Base class for all errors raised by glm_crossval."""


class InsufficientDataError(CrossValidationError, ValueError):
    """The dataset has too few records for the requested operation.

    Leave-one-out cross-validation needs at least two records so that
    every fold keeps one training record.
    """


class SpecificationError(CrossValidationError, ValueError):
    """A ``ModelSpec`` does not match the dataset it is applied to.

    Raised when the response name differs from the dataset's declared
    response, when a covariate is absent from the dataset, when the
    family tag is unknown, or when no specs are supplied at all.
    """


class FittingError(CrossValidationError, RuntimeError):
    """The GLM fitting primitive failed.

    Covers IRLS non-convergence, numerical failures inside statsmodels
    or LAPACK, and per-fit timeouts.
    """
