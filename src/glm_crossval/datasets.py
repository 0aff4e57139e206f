"""Synthetic datasets.

:func:`simulate_affairs` generates records with the layout of the
extramarital-affairs survey data (Fair, 1978) commonly used to teach
count regression: a count response ``affairs`` and eight covariates.

Only four covariates drive the simulated mean,

    log μ = β₀ + β_c·[children = yes] + β_y·yearsmarried
            + β_r·(religiousness − 3) + β_t·(rating − 3)

while ``gender``, ``age``, ``education`` and ``occupation`` are drawn
independently of the response.  A spec using only the four true
covariates is therefore the correctly specified model and the other
covariates are noise — the situation cross-validation should detect.

The generator is seeded explicitly; no global random state is read
or written.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .dataset import Dataset

AFFAIRS_RESPONSE = "affairs"
AFFAIRS_COVARIATES = (
    "gender",
    "age",
    "yearsmarried",
    "children",
    "religiousness",
    "education",
    "occupation",
    "rating",
)
# Covariates that enter the simulated mean.
AFFAIRS_SIGNAL = ("children", "yearsmarried", "religiousness", "rating")

_DEFAULT_COEFS = {
    "intercept": 0.6,
    "children": 0.35,
    "yearsmarried": 0.06,
    "religiousness": -0.25,
    "rating": -0.3,
}


def simulate_affairs(
    n_records: int = 601,
    seed: int | None = None,
    *,
    coefs: dict[str, float] | None = None,
    overdispersion: float = 0.0,
) -> Dataset:
    """Simulate an affairs-style count dataset.

    Args:
        n_records: Number of records to generate.
        seed: Seed for ``np.random.default_rng``.
        coefs: Overrides for the mean-model coefficients (keys
            ``intercept``, ``children``, ``yearsmarried``,
            ``religiousness``, ``rating``).
        overdispersion: Variance of a multiplicative gamma frailty
            (mean 1) on μ.  ``0`` gives exactly Poisson counts; larger
            values give Var(Y) = μ + overdispersion·μ².

    Returns:
        A :class:`~glm_crossval.Dataset` with response ``"affairs"``.

    Raises:
        ValueError: If *n_records* < 1, *overdispersion* < 0 or
            *coefs* has unknown keys.
    """
    if n_records < 1:
        raise ValueError(f"n_records must be >= 1, got {n_records}.")
    if overdispersion < 0:
        raise ValueError(f"overdispersion must be >= 0, got {overdispersion}.")
    beta = dict(_DEFAULT_COEFS)
    if coefs:
        unknown = sorted(set(coefs) - set(beta))
        if unknown:
            raise ValueError(f"Unknown coefficient names: {unknown}.")
        beta.update(coefs)

    rng = np.random.default_rng(seed)
    n = n_records

    gender = rng.choice(["female", "male"], size=n)
    age = np.round(rng.uniform(18.0, 57.0, size=n), 1)
    # Years married cannot exceed adult years lived.
    yearsmarried = np.round(np.minimum(rng.uniform(0.125, 15.0, size=n), age - 17.5), 3)
    children = np.where(rng.random(n) < 0.3 + 0.04 * yearsmarried, "yes", "no")
    religiousness = rng.integers(1, 6, size=n)
    education = rng.choice([9, 12, 14, 16, 17, 18, 20], size=n)
    occupation = rng.integers(1, 8, size=n)
    rating = rng.integers(1, 6, size=n)

    eta = (
        beta["intercept"]
        + beta["children"] * (children == "yes")
        + beta["yearsmarried"] * yearsmarried
        + beta["religiousness"] * (religiousness - 3)
        + beta["rating"] * (rating - 3)
    )
    mu = np.exp(eta)
    if overdispersion > 0:
        shape = 1.0 / overdispersion
        mu = mu * rng.gamma(shape, 1.0 / shape, size=n)
    affairs = rng.poisson(mu)

    frame = pd.DataFrame(
        {
            AFFAIRS_RESPONSE: affairs.astype(int),
            "gender": pd.Categorical(gender, categories=["female", "male"]),
            "age": age,
            "yearsmarried": yearsmarried,
            "children": pd.Categorical(children, categories=["no", "yes"]),
            "religiousness": religiousness.astype(int),
            "education": education.astype(int),
            "occupation": occupation.astype(int),
            "rating": rating.astype(int),
        }
    )
    return Dataset(frame, AFFAIRS_RESPONSE)
