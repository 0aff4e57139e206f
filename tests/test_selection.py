"""Tests for information criteria and stepwise selection."""

import math
from types import SimpleNamespace

import pandas as pd
import pytest

from glm_crossval import (
    Dataset,
    ModelSpec,
    fit_glm,
    information_criterion,
    simulate_affairs,
    stepwise_select,
)
from glm_crossval.datasets import AFFAIRS_COVARIATES, AFFAIRS_SIGNAL
from glm_crossval.exceptions import SpecificationError

FULL = ModelSpec("affairs", AFFAIRS_COVARIATES)


@pytest.fixture(scope="module")
def affairs():
    return simulate_affairs(601, seed=2024)


# Only the column names matter to the table-driven fitter below.
TABLE_DATA = Dataset(
    pd.DataFrame(
        {
            "y": [0, 1, 2, 3],
            "a": [0.0, 1.0, 0.5, 2.0],
            "b": [1.0, 0.0, 1.0, 0.0],
            "n1": [0.3, 0.1, 0.9, 0.4],
            "n2": [2.0, 1.0, 3.0, 1.5],
        }
    ),
    "y",
)


def _fake_fitter(llf_by_covariates):
    """A fitter whose log-likelihood is looked up from a table."""

    def fitter(dataset, spec):
        return SimpleNamespace(
            spec=spec,
            llf=llf_by_covariates[spec.covariates],
            n_params=len(spec.covariates) + 1,
            n_obs=100,
        )

    return fitter


class TestInformationCriterion:
    def test_aic_matches_statsmodels(self, affairs):
        fitted = fit_glm(affairs, ModelSpec("affairs", AFFAIRS_SIGNAL))
        assert information_criterion(fitted, "aic") == pytest.approx(fitted.aic)

    def test_bic(self, affairs):
        fitted = fit_glm(affairs, ModelSpec("affairs", AFFAIRS_SIGNAL))
        expected = -2 * fitted.llf + math.log(fitted.n_obs) * fitted.n_params
        assert information_criterion(fitted, "BIC") == pytest.approx(expected)
        assert fitted.bic == pytest.approx(expected)

    def test_quasipoisson_undefined(self, affairs):
        fitted = fit_glm(affairs, ModelSpec("affairs", ("rating",), "quasipoisson"))
        with pytest.raises(ValueError, match="no log-likelihood"):
            information_criterion(fitted)

    def test_unknown_criterion(self, affairs):
        fitted = fit_glm(affairs, ModelSpec("affairs", ("rating",)))
        with pytest.raises(ValueError, match="criterion"):
            information_criterion(fitted, "hqic")


class TestStepwiseDeterministic:
    """Search logic checked against a table of log-likelihoods."""

    TABLE = {
        ("a", "n1", "n2"): -100.0,  # AIC 208
        ("n1", "n2"): -120.0,  # AIC 246
        ("a", "n2"): -100.0,  # AIC 206
        ("a", "n1"): -100.5,  # AIC 207
        ("n2",): -125.0,
        ("a",): -100.0,  # AIC 204
        (): -130.0,
    }

    def test_backward_drops_until_no_improvement(self):
        spec = ModelSpec("y", ("a", "n1", "n2"))
        result = stepwise_select(
            TABLE_DATA, spec, fitter=_fake_fitter(self.TABLE), criterion="aic"
        )
        assert result.spec.covariates == ("a",)
        assert [(s.action, s.covariate) for s in result.steps] == [
            ("drop", "n1"),
            ("drop", "n2"),
        ]
        assert result.start_criterion == pytest.approx(208.0)
        assert [s.criterion for s in result.steps] == pytest.approx([206.0, 204.0])
        assert result.final_criterion == pytest.approx(204.0)
        assert result.dropped == ["n1", "n2"]

    def test_ties_keep_current_model(self):
        table = {("a",): -100.0, (): -101.0}  # AIC 204 for both
        result = stepwise_select(
            TABLE_DATA, ModelSpec("y", ("a",)), fitter=_fake_fitter(table)
        )
        assert result.spec.covariates == ("a",)
        assert result.steps == ()

    def test_both_matches_backward_when_no_drop_helps(self):
        table = {
            ("a", "b"): -100.0,  # AIC 206
            ("b",): -101.0,  # AIC 206
            ("a",): -101.5,  # AIC 207
            (): -110.0,
        }
        # Dropping never helps, so "both" ends where "backward" does.
        result = stepwise_select(
            TABLE_DATA,
            ModelSpec("y", ("a", "b")),
            fitter=_fake_fitter(table),
            direction="both",
        )
        assert result.spec.covariates == ("a", "b")

    def test_quasipoisson_searched_under_poisson(self):
        seen = []
        fitter = _fake_fitter(self.TABLE)

        def recording(dataset, spec):
            seen.append(spec.family)
            return fitter(dataset, spec)

        spec = ModelSpec("y", ("a", "n1", "n2"), "quasipoisson", name="full")
        result = stepwise_select(TABLE_DATA, spec, fitter=recording)
        assert set(seen) == {"poisson"}
        assert result.spec.family == "quasipoisson"
        assert result.spec.covariates == ("a",)

    def test_each_subset_fitted_once(self):
        calls = []
        fitter = _fake_fitter(self.TABLE)

        def counting(dataset, spec):
            calls.append(spec.covariates)
            return fitter(dataset, spec)

        stepwise_select(TABLE_DATA, ModelSpec("y", ("a", "n1", "n2")), fitter=counting)
        assert len(calls) == len(set(calls))


class TestStepwiseOnData:
    def test_backward_aic_keeps_signal(self, affairs):
        result = stepwise_select(affairs, FULL, criterion="aic")
        assert set(AFFAIRS_SIGNAL) <= set(result.spec.covariates)
        assert result.final_criterion <= result.start_criterion

    def test_bic_drops_noise(self, affairs):
        result = stepwise_select(affairs, FULL, criterion="bic")
        assert set(AFFAIRS_SIGNAL) <= set(result.spec.covariates)
        assert len(result.spec.covariates) < len(AFFAIRS_COVARIATES)

    def test_selected_order_follows_start(self, affairs):
        result = stepwise_select(affairs, FULL, criterion="bic", direction="both")
        order = [AFFAIRS_COVARIATES.index(c) for c in result.spec.covariates]
        assert order == sorted(order)

    def test_to_dict(self, affairs):
        result = stepwise_select(affairs, FULL, criterion="bic")
        d = result.to_dict()
        assert d["criterion_name"] == "bic"
        assert all(set(step) == {"action", "covariate", "criterion"} for step in d["steps"])


class TestStepwiseValidation:
    def test_unknown_criterion(self, affairs):
        with pytest.raises(ValueError, match="criterion"):
            stepwise_select(affairs, FULL, criterion="cp")

    def test_unknown_direction(self, affairs):
        with pytest.raises(ValueError, match="direction"):
            stepwise_select(affairs, FULL, direction="forward")

    def test_spec_must_match_dataset(self, affairs):
        with pytest.raises(SpecificationError):
            stepwise_select(affairs, ModelSpec("affairs", ("salary",)))
