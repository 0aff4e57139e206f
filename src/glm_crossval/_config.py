"""Runtime configuration for the glm_crossval package.

Three knobs control how the cross-validation refits are executed:

* **n_jobs** — number of joblib workers used for the per-fold fits.
  ``1`` (default) runs the folds sequentially; ``-1`` uses every core.
* **maxiter** — IRLS iteration cap handed to ``statsmodels`` for every
  GLM fit.  A fit that hits the cap without converging raises
  :class:`~glm_crossval.exceptions.FittingError`.
* **fit_timeout** — optional wall-clock cap (seconds) for a single
  fold's fit when folds run in parallel.

Resolution order for each knob (first match wins):
    1. Programmatic override via the ``set_*`` function.
    2. An environment variable (``GLM_CROSSVAL_N_JOBS``,
       ``GLM_CROSSVAL_MAXITER``, ``GLM_CROSSVAL_FIT_TIMEOUT``).
    3. The built-in default.

Examples:
    Parallelise the refits from the shell::

        export GLM_CROSSVAL_N_JOBS=-1

    Tighten the iteration cap programmatically::

        import glm_crossval
        glm_crossval.set_maxiter(50)

    Restore the default resolution order::

        glm_crossval.set_maxiter(None)
"""

from __future__ import annotations

import os

_DEFAULT_N_JOBS = 1
_DEFAULT_MAXITER = 100

# Sentinels indicating "no programmatic override has been set".
_n_jobs_override: int | None = None
_maxiter_override: int | None = None
_fit_timeout_override: float | None = None


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}.") from None


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}.") from None


def _check_n_jobs(value: int) -> int:
    # joblib accepts any non-zero int; negatives count back from n_cpus.
    if value == 0:
        raise ValueError("n_jobs must be a non-zero integer, got 0.")
    return value


def get_n_jobs() -> int:
    """Return the number of joblib workers for per-fold fits.

    Returns:
        A non-zero integer; ``-1`` means "all cores".
    """
    if _n_jobs_override is not None:
        return _n_jobs_override
    env = _env_int("GLM_CROSSVAL_N_JOBS")
    if env is not None:
        return _check_n_jobs(env)
    return _DEFAULT_N_JOBS


def set_n_jobs(n_jobs: int | None) -> None:
    """Override the number of joblib workers.

    Args:
        n_jobs: Non-zero integer, or ``None`` to restore the default
            resolution order.

    Raises:
        ValueError: If *n_jobs* is zero or not an integer.
    """
    global _n_jobs_override
    if n_jobs is not None:
        if not isinstance(n_jobs, int) or isinstance(n_jobs, bool):
            raise ValueError(f"n_jobs must be an integer, got {n_jobs!r}.")
        _check_n_jobs(n_jobs)
    _n_jobs_override = n_jobs


def get_maxiter() -> int:
    """Return the IRLS iteration cap for GLM fits."""
    if _maxiter_override is not None:
        return _maxiter_override
    env = _env_int("GLM_CROSSVAL_MAXITER")
    if env is not None:
        if env < 1:
            raise ValueError(f"GLM_CROSSVAL_MAXITER must be >= 1, got {env}.")
        return env
    return _DEFAULT_MAXITER


def set_maxiter(maxiter: int | None) -> None:
    """Override the IRLS iteration cap.

    Args:
        maxiter: Positive integer, or ``None`` to restore the default
            resolution order.

    Raises:
        ValueError: If *maxiter* is not a positive integer.
    """
    global _maxiter_override
    if maxiter is not None and (not isinstance(maxiter, int) or maxiter < 1):
        raise ValueError(f"maxiter must be a positive integer, got {maxiter!r}.")
    _maxiter_override = maxiter


def get_fit_timeout() -> float | None:
    """Return the per-fit wall-clock cap in seconds, or ``None``."""
    if _fit_timeout_override is not None:
        return _fit_timeout_override
    env = _env_float("GLM_CROSSVAL_FIT_TIMEOUT")
    if env is not None and env <= 0:
        raise ValueError(f"GLM_CROSSVAL_FIT_TIMEOUT must be > 0, got {env}.")
    return env


def set_fit_timeout(seconds: float | None) -> None:
    """Override the per-fit wall-clock cap.

    The cap only applies when folds run on a joblib pool
    (``n_jobs != 1``); joblib cannot interrupt a sequential fit.

    Args:
        seconds: Positive number, or ``None`` to restore the default
            resolution order.

    Raises:
        ValueError: If *seconds* is not positive.
    """
    global _fit_timeout_override
    if seconds is not None and seconds <= 0:
        raise ValueError(f"fit timeout must be > 0 seconds, got {seconds!r}.")
    _fit_timeout_override = None if seconds is None else float(seconds)
