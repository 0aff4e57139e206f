"""Formatted ASCII table display utilities.

These tables mirror the statsmodels summary style: an 80-column
bordered layout with a centred title, a top panel of model-level
statistics and a bottom panel of per-item rows.  Each ``print_*``
function writes to stdout and returns ``None``.
"""

from __future__ import annotations

import math
import textwrap
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ._results import CVResult, GoodnessOfFit, SelectionResult
    from .dataset import Dataset
    from .fitting import FittedModel

W = 80


def _truncate(name: str, max_len: int) -> str:
    """Truncate *name* to *max_len*, appending ``'...'`` if needed."""
    if len(name) <= max_len:
        return name
    return name[: max_len - 3] + "..."


def _fmt(val: float | None, digits: int = 4) -> str:
    """Format a number, rendering ``None`` and NaN as ``'N/A'``."""
    if val is None or (isinstance(val, float) and math.isnan(val)):
        return "N/A"
    return f"{val:.{digits}f}"


def _fmt_p(p: float | None) -> str:
    """Format a p-value: scientific notation if tiny, 4 dp otherwise."""
    if p is None or math.isnan(p):
        return "N/A"
    if p < 0.0001:
        return f"{p:.2e}"
    return f"{p:.4f}"


def _stars(p: float) -> str:
    if math.isnan(p):
        return ""
    if p < 0.001:
        return "***"
    if p < 0.01:
        return "**"
    if p < 0.05:
        return "*"
    return ""


def _wrap(text: str, width: int = W, indent: int = 2) -> str:
    """Word-wrap *text*, indenting continuation lines only."""
    return textwrap.fill(text, width=width, initial_indent="", subsequent_indent=" " * indent)


def _title(title: str) -> None:
    print("=" * W)
    for line in textwrap.wrap(title, width=W - 2):
        print(f"{line:^{W}}")
    print("=" * W)


def _notes(notes: list[str]) -> None:
    if not notes:
        return
    print("-" * W)
    print("Notes")
    print("-" * W)
    for note in notes:
        print(_wrap(f"  [!] {note}", indent=6))


def print_dataset_info_table(
    dataset: Dataset,
    *,
    name: str = "Dataset",
    target_description: str | None = None,
    title: str = "Dataset Information",
) -> None:
    """Print dataset dimensions, covariates and response statistics.

    Args:
        dataset: The dataset to describe.
        name: Display name of the dataset.
        target_description: Optional description of the response.
        title: Title for the output table.
    """
    lw = 20  # label column width
    _title(title)

    print(f"  {'Dataset:':<{lw}}{name}")
    print(f"  {'No. Records:':<{lw}}{dataset.n_records}")
    covs = dataset.covariates
    prefix = f"{len(covs)} ("
    cov_str = _truncate(", ".join(covs), W - 2 - lw - len(prefix) - 1)
    print(f"  {'No. Covariates:':<{lw}}{prefix}{cov_str})")
    if target_description:
        print(f"  {'Response:':<{lw}}{dataset.response} ({target_description})")
    else:
        print(f"  {'Response:':<{lw}}{dataset.response}")

    stats = dataset.describe_response()
    print("-" * W)
    print(f"  {'Y Range:':<{lw}}[{stats['min']:g}, {stats['max']:g}]")
    print(f"  {'Y Mean:':<{lw}}{_fmt(stats['mean'])}")
    print(
        f"  {'Y Variance:':<{lw}}{_fmt(stats['var'])}  "
        f"(var/mean = {_fmt(stats['var_mean_ratio'], 2)})"
    )
    print("=" * W)
    print()


def print_fit_table(fitted: FittedModel, *, title: str | None = None) -> None:
    """Print a coefficient table for one fitted model.

    The top panel holds model-level statistics (deviance, dispersion,
    information criteria); the bottom panel lists each coefficient
    with its standard error, Wald statistic and p-value.
    """
    family = fitted.family
    _title(title or f"{family.name.capitalize()} GLM: {fitted.spec.formula}")

    rows = [
        ("No. Records:", str(fitted.n_obs), "Deviance:", _fmt(fitted.deviance)),
        ("Df Residuals:", f"{fitted.df_resid:g}", "Null Deviance:", _fmt(fitted.null_deviance)),
        ("Df Model:", f"{fitted.df_model:g}", "Pearson χ²:", _fmt(fitted.pearson_chi2)),
        ("Family:", family.name, "Dispersion:", _fmt(fitted.scale)),
        ("Link:", "log", "AIC:", _fmt(fitted.aic)),
        ("", "", "BIC:", _fmt(fitted.bic)),
    ]
    for ll, lv, rl, rv in rows:
        left = f"{ll:<16}{lv:<24}" if ll else f"{'':<40}"
        print(f"{left}{rl:>29} {rv:>10}")

    stat = family.stat_label
    print("-" * W)
    print(f"{'':<24}{'coef':>12}{'std err':>12}{stat:>10}{f'P>|{stat}|':>12}{'':>6}")
    print("-" * W)
    for name in fitted.design_columns:
        coef = float(fitted.params[name])
        se = float(fitted.bse[name])
        p = float(fitted.pvalues[name])
        z = coef / se if se > 0 else float("nan")
        print(
            f"{_truncate(name, 23):<24}{coef:>12.4f}{_fmt(se):>12}"
            f"{_fmt(z, 3):>10}{_fmt_p(p):>12}  {_stars(p):<4}"
        )

    if fitted.df_resid > 0:
        note = family.dispersion_note(fitted.pearson_chi2 / fitted.df_resid)
        _notes([note] if note else [])
    print("=" * W)
    print()


def print_gof_table(gof: GoodnessOfFit, *, title: str = "Goodness of Fit") -> None:
    """Print deviance and Pearson χ² goodness-of-fit tests."""
    lw = 24
    _title(title)
    print(f"  {'Family:':<{lw}}{gof.family}")
    print(f"  {'No. Records:':<{lw}}{gof.n_obs}")
    print(f"  {'Df Residuals:':<{lw}}{gof.df_resid:g}")
    print("-" * W)
    print(f"  {'':<{lw}}{'statistic':>14}{'p-value':>14}")
    print(f"  {'Residual deviance':<{lw}}{_fmt(gof.deviance):>14}{_fmt_p(gof.deviance_p_value):>14}")
    print(f"  {'Pearson χ²':<{lw}}{_fmt(gof.pearson_chi2):>14}{_fmt_p(gof.pearson_p_value):>14}")
    print(f"  {'Dispersion (X²/df)':<{lw}}{_fmt(gof.dispersion):>14}")

    notes = []
    if gof.overdispersed:
        notes.append(
            f"Dispersion = {_fmt(gof.dispersion)}: overdispersion detected; "
            "Poisson standard errors are too small."
        )
    if gof.note and gof.note not in notes:
        notes.append(gof.note)
    _notes(notes)
    print("=" * W)
    print()


def print_cv_table(
    result: CVResult,
    *,
    title: str = "Leave-One-Out Cross-Validation",
) -> None:
    """Print specs ranked by leave-one-out RMSE, best first."""
    _title(title)
    print(f"  {'Folds:':<12}{result.n_folds}")
    print("-" * W)
    print(f"  {'Rank':<6}{'Model':<46}{'Family':<14}{'RMSE':>10}")
    print("-" * W)
    for rank, (spec, rmse) in enumerate(result.ranking(), start=1):
        label = spec.name or spec.formula
        print(
            f"  {rank:<6}{_truncate(label, 45):<46}"
            f"{spec.family:<14}{rmse:>10.4f}"
        )
    print("=" * W)
    print()


def print_selection_table(
    result: SelectionResult,
    *,
    title: str = "Stepwise Selection",
) -> None:
    """Print the accepted moves of a stepwise search."""
    crit = result.criterion_name.upper()
    _title(title)
    print(f"  {'Start:':<12}{_truncate(', '.join(result.start_covariates) or '(intercept)', W - 14)}")
    print(f"  {'Selected:':<12}{_truncate(', '.join(result.spec.covariates) or '(intercept)', W - 14)}")
    print("-" * W)
    print(f"  {'Step':<6}{'Action':<10}{'Covariate':<40}{crit:>12}")
    print("-" * W)
    print(f"  {0:<6}{'start':<10}{'':<40}{result.start_criterion:>12.4f}")
    for i, step in enumerate(result.steps, start=1):
        print(
            f"  {i:<6}{step.action:<10}{_truncate(step.covariate, 39):<40}"
            f"{step.criterion:>12.4f}"
        )
    print("=" * W)
    print()
