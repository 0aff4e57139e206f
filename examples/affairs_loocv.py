"""
Leave-One-Out Model Comparison: Extramarital Affairs Counts
Simulated data with the layout of Fair (1978)

Demonstrates:
- ``Dataset`` / ``ModelSpec`` — data and model specifications as
  plain values
- Poisson fit, goodness-of-fit tests and the overdispersion check
  that motivates ``family="quasipoisson"``
- Backward stepwise selection by BIC
- Cook's distance review and explicit outlier removal
- ``CrossValidationEvaluator`` ranking a full and a reduced
  Quasipoisson model by leave-one-out RMSE on a 20-record sample

The response *affairs* counts episodes in the past year.  Only
children, years married, religiousness and marriage rating drive the
simulated mean; gender, age, education and occupation are noise.  A
gamma frailty makes the counts overdispersed, as the real survey
data are.
"""

import logging

from glm_crossval import (
    CrossValidationEvaluator,
    ModelSpec,
    compare_nested,
    compute_cooks_distance,
    fit_glm,
    goodness_of_fit,
    print_cv_table,
    print_dataset_info_table,
    print_fit_table,
    print_gof_table,
    print_selection_table,
    simulate_affairs,
    stepwise_select,
)
from glm_crossval.datasets import AFFAIRS_COVARIATES

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

# ============================================================================
# Load data
# ============================================================================

affairs = simulate_affairs(601, seed=1978, overdispersion=1.5)

print_dataset_info_table(
    affairs,
    name="Affairs (simulated)",
    target_description="episodes in the past year",
)

# ============================================================================
# Full Poisson model and goodness of fit
# ============================================================================

full_poisson = ModelSpec("affairs", AFFAIRS_COVARIATES, "poisson", name="Full (Poisson)")
fitted = fit_glm(affairs, full_poisson)
print_fit_table(fitted)
print_gof_table(goodness_of_fit(fitted))

# The dispersion is well above 1, so inference switches to Quasipoisson.
full_quasi = full_poisson.with_family("quasipoisson")
print_fit_table(fit_glm(affairs, full_quasi))

# ============================================================================
# Stepwise selection
# ============================================================================

selection = stepwise_select(affairs, full_quasi, criterion="bic")
print_selection_table(selection)

if selection.dropped:
    comparison = compare_nested(
        fit_glm(affairs, selection.spec), fit_glm(affairs, full_quasi)
    )
    print(
        f"Analysis of deviance ({comparison.test}), dropping "
        f"{', '.join(selection.dropped)}: "
        f"ΔD = {comparison.delta_deviance:.3f} on {comparison.delta_df:g} df, "
        f"p = {comparison.p_value:.4f}"
    )
    print()

# ============================================================================
# Influence review
# ============================================================================

cooks = compute_cooks_distance(dataset=affairs, spec=selection.spec)
if cooks["warning"]:
    print(cooks["warning"])
    print()

# Removing influential records is a judgement call; here the five
# largest are dropped before the cross-validation sample is drawn.
cleaned = affairs.drop_records(cooks["influential_labels"][:5])

# ============================================================================
# Leave-one-out cross-validation on a small sample
# ============================================================================

sample = cleaned.sample(20, seed=42)
model_a = ModelSpec(
    "affairs",
    ("children", "yearsmarried", "religiousness", "rating", "gender", "age", "education"),
    "quasipoisson",
    name="A: seven covariates",
)
model_b = ModelSpec(
    "affairs",
    ("children", "yearsmarried", "religiousness", "rating"),
    "quasipoisson",
    name="B: four covariates",
)

result = CrossValidationEvaluator(n_jobs=2).evaluate(sample, [model_a, model_b])
print_cv_table(result, title="Leave-One-Out RMSE (20 records)")
print(f"Preferred model: {result.best.label}")
