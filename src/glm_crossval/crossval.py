"""Leave-one-out cross-validation of competing count-regression specs.

For a dataset of n records and a list of candidate specs, the
evaluator performs n folds.  Fold i trains every spec on the n − 1
records other than i, predicts the conditional mean of record i on
the response scale, and stores the signed error

    e_i = y_i − μ̂₋ᵢ(x_i)

Each spec's score is the root-mean-squared error over all folds,

    RMSE = √[(1/n) Σᵢ e_i²]

and the spec with the lowest RMSE predicts best out of sample.

Leave-one-out is used rather than k-fold because the intended
datasets are small (tens of records): every fold keeps the largest
possible training set.  The price is n independent refits per spec,
which is why the refits can be spread over a joblib pool.

Independence and ordering
~~~~~~~~~~~~~~~~~~~~~~~~~
Every (fold, spec) fit builds its own training subset and its own
statsmodels model; nothing is shared between them.  When
``n_jobs != 1`` the fits run on ``joblib.Parallel(prefer="threads")``
— statsmodels' IRLS spends its time in LAPACK, which releases the
GIL.  joblib returns results in submission order, so errors are
aggregated by fold index regardless of completion order.

Failure policy
~~~~~~~~~~~~~~
Specs are checked against the dataset before the first fold.  After
that, any failing fold (non-convergence, numerical error, timeout)
aborts the whole run: an RMSE computed over a subset of folds is not
comparable with one computed over all of them, so no partial result
is ever returned.
"""

from __future__ import annotations

import logging
import multiprocessing
from collections.abc import Callable, Sequence
from functools import partial
from typing import Any

import numpy as np
from joblib import Parallel, delayed
from sklearn.metrics import mean_squared_error
from sklearn.model_selection import LeaveOneOut

from ._config import get_fit_timeout, get_n_jobs
from ._results import CVResult
from .dataset import Dataset
from .design import check_spec
from .exceptions import FittingError, InsufficientDataError, SpecificationError
from .fitting import fit_glm, suppress_fit_warnings
from .specs import ModelSpec

logger = logging.getLogger(__name__)

# fitter(training_dataset, spec) -> object with .predict(dataset) -> ndarray
Fitter = Callable[[Dataset, ModelSpec], Any]


def _predict_held_out(
    fitter: Fitter,
    train: Dataset,
    held_out: Dataset,
    spec: ModelSpec,
) -> float:
    """Fit *spec* on *train* and predict the single record of *held_out*."""
    fitted = fitter(train, spec)
    return float(np.asarray(fitted.predict(held_out), dtype=float)[0])


class CrossValidationEvaluator:
    """Rank count-regression specs by leave-one-out RMSE.

    The evaluator holds configuration only; :meth:`evaluate` keeps no
    state between calls.

    Args:
        fitter: Fitting primitive ``fitter(dataset, spec)`` returning
            an object with ``predict(dataset)``.  Defaults to
            :func:`~glm_crossval.fitting.fit_glm`.
        n_jobs: joblib workers for the per-fold fits.  ``None`` uses
            :func:`~glm_crossval.get_n_jobs`.
        timeout: Wall-clock cap in seconds for each fit when running
            in parallel.  ``None`` uses
            :func:`~glm_crossval.get_fit_timeout`.
        maxiter: IRLS iteration cap forwarded to the default fitter.
            Ignored when a custom *fitter* is supplied.
    """

    def __init__(
        self,
        fitter: Fitter | None = None,
        *,
        n_jobs: int | None = None,
        timeout: float | None = None,
        maxiter: int | None = None,
    ) -> None:
        if fitter is None:
            fitter = partial(fit_glm, maxiter=maxiter) if maxiter is not None else fit_glm
        self.fitter = fitter
        self.n_jobs = n_jobs
        self.timeout = timeout

    def __repr__(self) -> str:
        return (
            f"CrossValidationEvaluator(n_jobs={self.n_jobs!r}, "
            f"timeout={self.timeout!r})"
        )

    def _check_inputs(
        self,
        dataset: Dataset,
        model_specs: Sequence[ModelSpec],
    ) -> tuple[ModelSpec, ...]:
        specs = tuple(model_specs)
        if not specs:
            raise SpecificationError("At least one ModelSpec is required.")
        duplicates = {s.label for s in specs if specs.count(s) > 1}
        if duplicates:
            raise SpecificationError(f"Duplicate specs: {sorted(duplicates)}.")
        labels = [s.label for s in specs]
        shared = sorted({label for label in labels if labels.count(label) > 1})
        if shared:
            raise SpecificationError(
                f"Duplicate spec labels: {shared}.  Give each spec a distinct name."
            )
        for spec in specs:
            check_spec(dataset, spec)
        if dataset.n_records < 2:
            raise InsufficientDataError(
                "Leave-one-out cross-validation needs at least 2 records, "
                f"got {dataset.n_records}."
            )
        return specs

    def evaluate(
        self,
        dataset: Dataset,
        model_specs: Sequence[ModelSpec],
    ) -> CVResult:
        """Compute the leave-one-out RMSE of every spec.

        Args:
            dataset: The n records, n ≥ 2.
            model_specs: Non-empty sequence of distinct specs, all
                referring to the dataset's response and covariates.

        Returns:
            A :class:`~glm_crossval.CVResult` mapping each spec to its
            RMSE, with the per-fold predictions and errors attached.

        Raises:
            SpecificationError: If a spec does not match the dataset
                (raised before any fold is fitted).
            InsufficientDataError: If the dataset has fewer than 2
                records.
            FittingError: If any fold's fit fails or times out.
        """
        specs = self._check_inputs(dataset, model_specs)
        n = dataset.n_records
        n_jobs = self.n_jobs if self.n_jobs is not None else get_n_jobs()
        timeout = self.timeout if self.timeout is not None else get_fit_timeout()

        folds = [
            (dataset.take(train_idx), dataset.take(test_idx))
            for train_idx, test_idx in LeaveOneOut().split(np.zeros((n, 1)))
        ]
        tasks = [
            (fold, spec, train, held_out)
            for fold, (train, held_out) in enumerate(folds)
            for spec in specs
        ]
        logger.info(
            "Leave-one-out CV: %d records, %d spec(s), %d fits (n_jobs=%d)",
            n,
            len(specs),
            len(tasks),
            n_jobs,
        )

        # Filters are installed here, in the calling thread, for the whole
        # pool; worker threads never enter catch_warnings themselves.
        with suppress_fit_warnings():
            if n_jobs == 1:
                # Sequential path, no joblib pool.
                preds_flat = []
                for fold, spec, train, held_out in tasks:
                    logger.debug("Fold %d/%d: fitting %s", fold + 1, n, spec.label)
                    preds_flat.append(
                        _predict_held_out(self.fitter, train, held_out, spec)
                    )
            else:
                try:
                    preds_flat = Parallel(
                        n_jobs=n_jobs, prefer="threads", timeout=timeout
                    )(
                        delayed(_predict_held_out)(self.fitter, train, held_out, spec)
                        for _, spec, train, held_out in tasks
                    )
                except (TimeoutError, multiprocessing.TimeoutError) as exc:
                    raise FittingError(
                        f"A fold fit exceeded the {timeout}s timeout; "
                        "cross-validation aborted."
                    ) from exc

        # tasks are fold-major, so column j holds spec j across folds.
        pred_matrix = np.asarray(preds_flat, dtype=float).reshape(n, len(specs))
        observed = np.array([held.response_values[0] for _, held in folds])
        labels = tuple(held.labels[0] for _, held in folds)

        rmse: dict[ModelSpec, float] = {}
        predictions: dict[ModelSpec, np.ndarray] = {}
        errors: dict[ModelSpec, np.ndarray] = {}
        for j, spec in enumerate(specs):
            preds = pred_matrix[:, j]
            bad = np.flatnonzero(~np.isfinite(preds))
            if bad.size:
                raise FittingError(
                    f"Non-finite prediction for {spec.label!r} on fold(s) "
                    f"{bad.tolist()}; cross-validation aborted."
                )
            predictions[spec] = preds
            errors[spec] = observed - preds
            rmse[spec] = float(np.sqrt(mean_squared_error(observed, preds)))
            logger.info("RMSE %-50s %.6f", spec.label, rmse[spec])

        return CVResult(
            specs=specs,
            rmse=rmse,
            observed=observed,
            predictions=predictions,
            errors=errors,
            labels=labels,
        )


def cross_validate(
    dataset: Dataset,
    model_specs: Sequence[ModelSpec],
    *,
    fitter: Fitter | None = None,
    n_jobs: int | None = None,
    timeout: float | None = None,
    maxiter: int | None = None,
) -> CVResult:
    """Functional wrapper around :meth:`CrossValidationEvaluator.evaluate`.

    See :class:`CrossValidationEvaluator` for the arguments.
    """
    evaluator = CrossValidationEvaluator(
        fitter, n_jobs=n_jobs, timeout=timeout, maxiter=maxiter
    )
    return evaluator.evaluate(dataset, model_specs)
