"""Count-response datasets.

A :class:`Dataset` is an ordered collection of records stored in a
pandas ``DataFrame`` together with the name of its declared response.
Datasets are treated as immutable: every operation that removes or
selects records returns a new instance and leaves the original
untouched, so cross-validation folds never share mutable state.

The response must be complete.  Covariates may contain missing
values; a spec that references such a covariate is rejected when it
is fitted or cross-validated.

Covariates stored as strings (or pandas ``object`` columns) are
converted to ``pandas.Categorical`` once, at construction.  Subsets
inherit the full level set, which keeps the dummy-coded design matrix
of a training fold column-compatible with the held-out record even
when a level happens to be missing from the fold.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
import pandas as pd

from ._compat import FrameLike, as_pandas_frame
from .exceptions import InsufficientDataError, SpecificationError
from .families import _validate_counts


class Dataset:
    """Ordered records with a declared count response.

    Attributes:
        frame: The underlying DataFrame.  Treat it as read-only.
        response: Name of the response column.
    """

    __slots__ = ("frame", "response")

    def __init__(self, frame: pd.DataFrame, response: str) -> None:
        if response not in frame.columns:
            raise SpecificationError(
                f"Response {response!r} is not a column of the dataset. "
                f"Columns: {list(frame.columns)}."
            )
        if frame[response].isna().any():
            raise ValueError(f"Dataset contains missing values in response {response!r}.")
        _validate_counts(frame[response].to_numpy(), "Dataset")

        converted = {
            col: frame[col].astype("category")
            for col in frame.columns
            if col != response
            and (frame[col].dtype == object or pd.api.types.is_string_dtype(frame[col]))
            and not isinstance(frame[col].dtype, pd.CategoricalDtype)
        }
        if converted:
            frame = frame.assign(**converted)

        self.frame = frame
        self.response = response

    @classmethod
    def from_frame(cls, data: FrameLike, response: str) -> Dataset:
        """Build a dataset from any supported tabular input.

        Args:
            data: pandas / Polars frame, column mapping or list of
                record mappings.
            response: Name of the response column.
        """
        return cls(as_pandas_frame(data, name="data"), response)

    # ---- Introspection ---------------------------------------------

    def __len__(self) -> int:
        return len(self.frame)

    def __repr__(self) -> str:
        return (
            f"Dataset(n_records={self.n_records}, response={self.response!r}, "
            f"covariates={self.covariates})"
        )

    @property
    def n_records(self) -> int:
        return len(self.frame)

    @property
    def covariates(self) -> list[str]:
        return [c for c in self.frame.columns if c != self.response]

    @property
    def labels(self) -> list[Any]:
        """Record identities (the DataFrame index labels), in order."""
        return self.frame.index.tolist()

    @property
    def response_values(self) -> np.ndarray:
        return self.frame[self.response].to_numpy(dtype=float)

    def is_categorical(self, covariate: str) -> bool:
        dtype = self.frame[covariate].dtype
        return isinstance(dtype, pd.CategoricalDtype) or dtype == bool

    def describe_response(self) -> dict[str, float]:
        """Summary statistics of the response.

        Returns:
            ``min``, ``max``, ``mean``, ``var`` (sample variance) and
            ``var_mean_ratio`` — a marginal dispersion indicator that
            is ≈ 1 for Poisson-like counts.
        """
        y = self.response_values
        mean = float(np.mean(y)) if len(y) else float("nan")
        var = float(np.var(y, ddof=1)) if len(y) > 1 else float("nan")
        return {
            "min": float(np.min(y)) if len(y) else float("nan"),
            "max": float(np.max(y)) if len(y) else float("nan"),
            "mean": mean,
            "var": var,
            "var_mean_ratio": var / mean if mean > 0 else float("nan"),
        }

    # ---- Record selection ------------------------------------------

    def _subset(self, frame: pd.DataFrame) -> Dataset:
        out = object.__new__(Dataset)
        out.frame = frame
        out.response = self.response
        return out

    def take(self, positions: Sequence[int] | np.ndarray) -> Dataset:
        """Return the records at ordinal *positions* (in the given order)."""
        return self._subset(self.frame.iloc[np.asarray(positions, dtype=int)])

    def without(self, position: int) -> Dataset:
        """Return a dataset with the record at ordinal *position* removed.

        Raises:
            IndexError: If *position* is outside ``[0, n_records)``.
        """
        n = self.n_records
        if not 0 <= position < n:
            raise IndexError(f"Record position {position} out of range for n={n}.")
        keep = np.delete(np.arange(n), position)
        return self._subset(self.frame.iloc[keep])

    def drop_records(self, labels: Iterable[Any]) -> Dataset:
        """Return a dataset without the records whose index labels are given.

        This is the explicit, caller-driven way to remove outliers
        identified with :func:`~glm_crossval.diagnostics.compute_cooks_distance`.

        Raises:
            KeyError: If any label is not in the dataset.
        """
        labels = list(labels)
        unknown = [lab for lab in labels if lab not in self.frame.index]
        if unknown:
            raise KeyError(f"Record labels not in dataset: {unknown}.")
        return self._subset(self.frame.drop(index=labels))

    def sample(self, n: int, seed: int | None = None) -> Dataset:
        """Draw *n* records without replacement.

        The generator is seeded explicitly, so identical ``(n, seed)``
        pairs always select the same records.

        Raises:
            InsufficientDataError: If *n* exceeds the number of records.
        """
        if n > self.n_records:
            raise InsufficientDataError(
                f"Cannot sample {n} records from a dataset of {self.n_records}."
            )
        if n < 0:
            raise ValueError(f"Sample size must be non-negative, got {n}.")
        rng = np.random.default_rng(seed)
        idx = np.sort(rng.choice(self.n_records, size=n, replace=False))
        return self.take(idx)
