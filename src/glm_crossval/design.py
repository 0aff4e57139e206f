"""Design-matrix construction.

Converts the covariates named by a :class:`~glm_crossval.specs.ModelSpec`
into the numeric exog matrix handed to ``statsmodels.GLM``:

* an ``Intercept`` column of ones, always first;
* numeric covariates as float columns, unchanged;
* boolean covariates as a single 0/1 column;
* categorical covariates treatment-coded against their first level,
  one ``<name>[<level>]`` column per remaining level.

Because a dataset's categorical columns keep their full level set in
every subset, the columns produced for a training fold and for the
held-out record are always identical.
"""

from __future__ import annotations

import pandas as pd

from .dataset import Dataset
from .exceptions import SpecificationError
from .specs import ModelSpec

INTERCEPT = "Intercept"


def check_spec(dataset: Dataset, spec: ModelSpec) -> None:
    """Raise if *spec* cannot be applied to *dataset*.

    Raises:
        SpecificationError: If the response names differ or a
            covariate is not a column of the dataset or
            contains missing values.
    """
    if spec.response != dataset.response:
        raise SpecificationError(
            f"Spec response {spec.response!r} does not match the dataset "
            f"response {dataset.response!r}."
        )
    unknown = [c for c in spec.covariates if c not in dataset.covariates]
    if unknown:
        raise SpecificationError(
            f"Spec {spec.label!r} references covariates absent from the "
            f"dataset: {unknown}.  Available: {dataset.covariates}."
        )
    incomplete = [c for c in spec.covariates if dataset.frame[c].isna().any()]
    if incomplete:
        raise SpecificationError(
            f"Spec {spec.label!r} references covariates with missing values: "
            f"{incomplete}."
        )


def design_matrix(dataset: Dataset, spec: ModelSpec) -> pd.DataFrame:
    """Build the exog matrix for *spec* over every record of *dataset*.

    Returns:
        Float DataFrame indexed like ``dataset.frame`` with the
        intercept first and covariate columns in spec order.
    """
    check_spec(dataset, spec)
    frame = dataset.frame
    blocks = [pd.DataFrame({INTERCEPT: 1.0}, index=frame.index)]
    for name in spec.covariates:
        col = frame[name]
        if isinstance(col.dtype, pd.CategoricalDtype):
            # Treatment coding, first level is the reference.
            levels = list(col.cat.categories)
            blocks.append(
                pd.DataFrame(
                    {f"{name}[{lev}]": (col == lev).astype(float) for lev in levels[1:]},
                    index=frame.index,
                )
            )
        elif col.dtype == bool:
            blocks.append(pd.DataFrame({name: col.astype(float)}, index=frame.index))
        elif pd.api.types.is_numeric_dtype(col):
            blocks.append(pd.DataFrame({name: col.astype(float)}, index=frame.index))
        else:
            raise SpecificationError(
                f"Covariate {name!r} has unsupported dtype {col.dtype}."
            )
    return pd.concat(blocks, axis=1)
