"""glm_crossval — Leave-one-out model comparison for count regression.

Fits Poisson and Quasipoisson GLMs through statsmodels, ranks
competing covariate specifications by leave-one-out RMSE, and
provides the surrounding analysis steps of a count-regression report:
goodness-of-fit tests, analysis of deviance, stepwise AIC/BIC
selection and Cook's-distance influence review.

Public API:
    .. autosummary::
        CrossValidationEvaluator
        cross_validate
        CVResult
        Dataset
        ModelSpec
        FittedModel
        fit_glm
        design_matrix
        goodness_of_fit
        compare_nested
        stepwise_select
        information_criterion
        compute_cooks_distance
        simulate_affairs
        print_dataset_info_table
        print_fit_table
        print_gof_table
        print_cv_table
        print_selection_table
        CountFamily
        PoissonFamily
        QuasiPoissonFamily
        register_family
        resolve_family
        get_n_jobs
        set_n_jobs
        get_maxiter
        set_maxiter
        get_fit_timeout
        set_fit_timeout
        CrossValidationError
        InsufficientDataError
        FittingError
        SpecificationError
"""

from ._config import (
    get_fit_timeout,
    get_maxiter,
    get_n_jobs,
    set_fit_timeout,
    set_maxiter,
    set_n_jobs,
)
from ._results import (
    CVResult,
    DevianceComparison,
    GoodnessOfFit,
    SelectionResult,
    SelectionStep,
)
from .crossval import CrossValidationEvaluator, cross_validate
from .dataset import Dataset
from .datasets import simulate_affairs
from .design import design_matrix
from .diagnostics import compute_cooks_distance
from .display import (
    print_cv_table,
    print_dataset_info_table,
    print_fit_table,
    print_gof_table,
    print_selection_table,
)
from .exceptions import (
    CrossValidationError,
    FittingError,
    InsufficientDataError,
    SpecificationError,
)
from .families import (
    CountFamily,
    PoissonFamily,
    QuasiPoissonFamily,
    register_family,
    resolve_family,
)
from .fitting import FittedModel, fit_glm
from .gof import compare_nested, goodness_of_fit
from .selection import information_criterion, stepwise_select
from .specs import ModelSpec

__all__ = [
    "CVResult",
    "DevianceComparison",
    "GoodnessOfFit",
    "SelectionResult",
    "SelectionStep",
    "CrossValidationEvaluator",
    "cross_validate",
    "Dataset",
    "ModelSpec",
    "FittedModel",
    "fit_glm",
    "design_matrix",
    "goodness_of_fit",
    "compare_nested",
    "stepwise_select",
    "information_criterion",
    "compute_cooks_distance",
    "simulate_affairs",
    "print_cv_table",
    "print_dataset_info_table",
    "print_fit_table",
    "print_gof_table",
    "print_selection_table",
    "CountFamily",
    "PoissonFamily",
    "QuasiPoissonFamily",
    "register_family",
    "resolve_family",
    "get_n_jobs",
    "set_n_jobs",
    "get_maxiter",
    "set_maxiter",
    "get_fit_timeout",
    "set_fit_timeout",
    "CrossValidationError",
    "InsufficientDataError",
    "FittingError",
    "SpecificationError",
]

__version__ = "0.1.0"
