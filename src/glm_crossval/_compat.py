"""Input normalisation for dataset construction.

Internally every dataset is a :class:`pandas.DataFrame`.  This module
converts the other tabular shapes callers commonly hold into one at
the boundary:

* ``pandas.DataFrame`` — returned as-is.
* ``polars.DataFrame`` / ``polars.LazyFrame`` — converted via
  ``.to_pandas()`` (lazy frames are collected first).
* a mapping of column name → sequence (``{"affairs": [0, 3], ...}``).
* a sequence of record mappings (``[{"affairs": 0, ...}, ...]``).

Polars is **not** a required dependency.  If it is not installed,
Polars inputs simply cannot occur and are never checked for.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, TypeAlias

import pandas as pd

if TYPE_CHECKING:
    import polars as pl

    FrameLike: TypeAlias = (
        pd.DataFrame
        | pl.DataFrame
        | pl.LazyFrame
        | Mapping[str, Sequence[Any]]
        | Sequence[Mapping[str, Any]]
    )
else:
    FrameLike: TypeAlias = Any

# Runtime detection; Polars is an optional dependency.
try:
    import polars as pl

    _HAS_POLARS = True
except ImportError:
    _HAS_POLARS = False


def as_pandas_frame(obj: FrameLike, *, name: str = "data") -> pd.DataFrame:
    """Convert *obj* to a :class:`pandas.DataFrame`.

    Args:
        obj: A pandas or Polars frame, a column mapping, or a sequence
            of record mappings.
        name: Label used in error messages.

    Returns:
        A pandas ``DataFrame``.  Pandas input is returned unchanged
        (no copy); every other input produces a new frame.

    Raises:
        TypeError: If *obj* is not one of the accepted shapes.
    """
    if isinstance(obj, pd.DataFrame):
        return obj

    if _HAS_POLARS:
        if isinstance(obj, pl.LazyFrame):
            return obj.collect().to_pandas()
        if isinstance(obj, pl.DataFrame):
            return obj.to_pandas()

    if isinstance(obj, Mapping):
        return pd.DataFrame(dict(obj))

    if (
        isinstance(obj, Sequence)
        and not isinstance(obj, (str, bytes))
        and all(isinstance(rec, Mapping) for rec in obj)
    ):
        return pd.DataFrame.from_records(list(obj))

    accepted = "a pandas DataFrame, a column mapping or a list of records"
    if _HAS_POLARS:
        accepted = "a pandas/Polars DataFrame, a column mapping or a list of records"
    raise TypeError(f"'{name}' must be {accepted}, got {type(obj).__name__}.")
