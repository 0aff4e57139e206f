"""Tests for leave-one-out cross-validation."""

import json
import threading
import time
import warnings

import numpy as np
import pandas as pd
import pytest

from glm_crossval import (
    CrossValidationEvaluator,
    CVResult,
    Dataset,
    ModelSpec,
    cross_validate,
    fit_glm,
    simulate_affairs,
)
from glm_crossval.datasets import AFFAIRS_SIGNAL
from glm_crossval.exceptions import (
    CrossValidationError,
    FittingError,
    InsufficientDataError,
    SpecificationError,
)

# ── Fixtures ─────────────────────────────────────────────────────── #

FULL_A = (
    "children",
    "yearsmarried",
    "religiousness",
    "rating",
    "gender",
    "age",
    "education",
)


class RecordingFitter:
    """Wrap ``fit_glm`` and record the training labels of every call."""

    def __init__(self, fail_on_call=None):
        self.calls = []
        self.fail_on_call = fail_on_call
        self._lock = threading.Lock()

    def __call__(self, dataset, spec):
        with self._lock:
            self.calls.append((tuple(dataset.labels), spec))
            n_calls = len(self.calls)
        if self.fail_on_call is not None and n_calls == self.fail_on_call:
            raise FittingError(f"forced failure on call {n_calls}")
        return fit_glm(dataset, spec)


@pytest.fixture(scope="module")
def small():
    return simulate_affairs(25, seed=3)


def _specs(family="poisson"):
    return [
        ModelSpec("affairs", FULL_A, family, name="A"),
        ModelSpec("affairs", AFFAIRS_SIGNAL, family, name="B"),
    ]


# ------------------------------------------------------------------ #
# Fold construction
# ------------------------------------------------------------------ #


class TestFolds:
    def test_each_training_set_excludes_exactly_one_record(self, small):
        fitter = RecordingFitter()
        specs = _specs()
        CrossValidationEvaluator(fitter, n_jobs=1).evaluate(small, specs)

        assert len(fitter.calls) == small.n_records * len(specs)
        all_labels = set(small.labels)
        for spec in specs:
            held_out = []
            for train_labels, called_spec in fitter.calls:
                if called_spec != spec:
                    continue
                assert len(train_labels) == small.n_records - 1
                missing = all_labels - set(train_labels)
                assert len(missing) == 1
                held_out.extend(missing)
            assert sorted(held_out) == sorted(all_labels)

    def test_fold_order_follows_records(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        assert list(result.labels) == small.labels
        np.testing.assert_array_equal(result.observed, small.response_values)

    def test_input_dataset_not_mutated(self, small):
        before = small.frame.copy()
        cross_validate(small, _specs(), n_jobs=1)
        pd.testing.assert_frame_equal(small.frame, before)


# ------------------------------------------------------------------ #
# RMSE values
# ------------------------------------------------------------------ #


class TestRMSE:
    @pytest.mark.parametrize("family", ["poisson", "quasipoisson"])
    def test_two_records_intercept_only(self, family):
        ds = Dataset(pd.DataFrame({"y": [3, 5]}), "y")
        spec = ModelSpec("y", family=family)
        result = cross_validate(ds, [spec], n_jobs=1)
        # Each fold predicts the other record's count: errors are -2 and +2.
        assert result[spec] == pytest.approx(2.0, rel=1e-6)
        np.testing.assert_allclose(result.errors[spec], [-2.0, 2.0], rtol=1e-6)

    def test_rmse_matches_errors(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        for spec in result:
            errors = result.errors[spec]
            assert result[spec] == pytest.approx(np.sqrt(np.mean(errors**2)))
            np.testing.assert_allclose(
                errors, result.observed - result.predictions[spec]
            )

    def test_rmse_non_negative(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        assert all(v >= 0 for v in result.values())

    def test_families_share_predictions(self, small):
        pois = cross_validate(small, _specs("poisson"), n_jobs=1)
        quasi = cross_validate(small, _specs("quasipoisson"), n_jobs=1)
        for p_spec, q_spec in zip(pois, quasi):
            assert quasi[q_spec] == pytest.approx(pois[p_spec], rel=1e-8)

    def test_saturated_folds_share_predictions(self):
        # Three coefficients on three training records: df_resid = 0 in
        # every fold, so the quasi dispersion is undefined.
        ds = Dataset(
            pd.DataFrame(
                {
                    "y": [2, 4, 3, 6],
                    "x1": [0.0, 1.0, 2.0, 3.0],
                    "x2": [1.0, 0.0, 2.0, 1.0],
                }
            ),
            "y",
        )
        pois = ModelSpec("y", ("x1", "x2"), "poisson")
        quasi = pois.with_family("quasipoisson")
        result = cross_validate(ds, [pois, quasi], n_jobs=1)
        assert np.all(np.isfinite(result.predictions[quasi]))
        np.testing.assert_allclose(
            result.predictions[quasi], result.predictions[pois], rtol=1e-10
        )
        assert result[quasi] == pytest.approx(result[pois], rel=1e-10)

    def test_parallel_leaves_warning_filters_untouched(self, small):
        before = list(warnings.filters)
        for _ in range(3):
            cross_validate(small, _specs("quasipoisson"), n_jobs=4)
        assert warnings.filters == before

    def test_deterministic(self, small):
        first = cross_validate(small, _specs("quasipoisson"), n_jobs=1)
        second = cross_validate(small, _specs("quasipoisson"), n_jobs=1)
        assert dict(first) == dict(second)

    def test_parallel_matches_sequential(self, small):
        seq = cross_validate(small, _specs(), n_jobs=1)
        par = cross_validate(small, _specs(), n_jobs=2)
        for spec in seq:
            assert par[spec] == pytest.approx(seq[spec], rel=1e-10)
            np.testing.assert_allclose(par.predictions[spec], seq.predictions[spec])

    def test_overparameterised_model_predicts_worse(self):
        """The 7-covariate model loses to the 4 true covariates on 20 records."""
        evaluator = CrossValidationEvaluator(n_jobs=1)
        a_scores, b_scores = [], []
        for seed in range(20):
            ds = simulate_affairs(20, seed=seed)
            result = evaluator.evaluate(ds, _specs("quasipoisson"))
            spec_a, spec_b = result.specs
            a_scores.append(result[spec_a])
            b_scores.append(result[spec_b])
        assert np.mean(a_scores) > np.mean(b_scores)


# ------------------------------------------------------------------ #
# Errors
# ------------------------------------------------------------------ #


class TestErrors:
    def test_single_record(self):
        ds = Dataset(pd.DataFrame({"y": [4]}), "y")
        with pytest.raises(InsufficientDataError, match="at least 2"):
            cross_validate(ds, [ModelSpec("y")])

    def test_empty_dataset(self):
        ds = Dataset(pd.DataFrame({"y": pd.Series([], dtype=int)}), "y")
        with pytest.raises(InsufficientDataError):
            cross_validate(ds, [ModelSpec("y")])

    def test_unknown_covariate_before_any_fold(self, small):
        fitter = RecordingFitter()
        specs = [ModelSpec("affairs", AFFAIRS_SIGNAL), ModelSpec("affairs", ("income",))]
        with pytest.raises(SpecificationError, match="income"):
            CrossValidationEvaluator(fitter).evaluate(small, specs)
        assert fitter.calls == []

    def test_response_mismatch_before_any_fold(self, small):
        fitter = RecordingFitter()
        with pytest.raises(SpecificationError, match="response"):
            CrossValidationEvaluator(fitter).evaluate(small, [ModelSpec("count", ("age",))])
        assert fitter.calls == []

    def test_specification_checked_before_size(self):
        ds = Dataset(pd.DataFrame({"y": [4], "x": [1.0]}), "y")
        with pytest.raises(SpecificationError):
            cross_validate(ds, [ModelSpec("y", ("z",))])

    def test_empty_spec_list(self, small):
        with pytest.raises(SpecificationError, match="At least one"):
            cross_validate(small, [])

    def test_duplicate_specs(self, small):
        spec = ModelSpec("affairs", ("age",))
        with pytest.raises(SpecificationError, match="Duplicate"):
            cross_validate(small, [spec, ModelSpec("affairs", ["age"])])

    def test_duplicate_labels(self, small):
        specs = [
            ModelSpec("affairs", ("age",), name="M"),
            ModelSpec("affairs", ("rating",), name="M"),
        ]
        fitter = RecordingFitter()
        with pytest.raises(SpecificationError, match="Duplicate spec labels"):
            CrossValidationEvaluator(fitter).evaluate(small, specs)
        assert fitter.calls == []

    def test_fold_failure_aborts(self, small):
        fitter = RecordingFitter(fail_on_call=5)
        with pytest.raises(FittingError, match="forced failure"):
            CrossValidationEvaluator(fitter, n_jobs=1).evaluate(small, _specs())
        # Nothing after the failing fold was attempted.
        assert len(fitter.calls) == 5

    def test_fold_failure_aborts_in_parallel(self, small):
        fitter = RecordingFitter(fail_on_call=3)
        with pytest.raises(FittingError):
            CrossValidationEvaluator(fitter, n_jobs=2).evaluate(small, _specs())

    def test_non_convergence(self, small):
        evaluator = CrossValidationEvaluator(n_jobs=1, maxiter=1)
        with pytest.raises(FittingError, match="did not converge"):
            evaluator.evaluate(small, _specs())

    def test_errors_share_base_class(self, small):
        with pytest.raises(CrossValidationError):
            cross_validate(small, [ModelSpec("affairs", ("income",))])

    def test_timeout_in_parallel(self, small):
        def slow_fitter(dataset, spec):
            time.sleep(1.0)
            return fit_glm(dataset, spec)

        evaluator = CrossValidationEvaluator(slow_fitter, n_jobs=2, timeout=0.05)
        with pytest.raises(FittingError, match="timeout"):
            evaluator.evaluate(small.take(range(4)), [ModelSpec("affairs")])


# ------------------------------------------------------------------ #
# Result object
# ------------------------------------------------------------------ #


class TestCVResult:
    def test_mapping_protocol(self, small):
        specs = _specs()
        result = cross_validate(small, specs, n_jobs=1)
        assert isinstance(result, CVResult)
        assert len(result) == 2
        assert list(result) == specs
        assert set(result.keys()) == set(specs)
        assert specs[0] in result
        assert ModelSpec("affairs", ("age",)) not in result

    def test_lookup_by_equal_spec(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        assert result[ModelSpec("affairs", AFFAIRS_SIGNAL)] == result.rmse[_specs()[1]]

    def test_ranking_and_best(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        ranked = result.ranking()
        assert [v for _, v in ranked] == sorted(result.values())
        assert result.best == ranked[0][0]

    def test_n_folds(self, small):
        assert cross_validate(small, _specs(), n_jobs=1).n_folds == small.n_records

    def test_to_dict_is_json_serialisable(self, small):
        result = cross_validate(small, _specs(), n_jobs=1)
        d = result.to_dict()
        json.dumps(d)
        assert d["n_folds"] == small.n_records
        assert set(d["rmse"]) == {"A", "B"}
        assert d["best"] in {"A", "B"}
        assert len(d["predictions"]["A"]) == small.n_records

    def test_repr_of_evaluator(self):
        assert "n_jobs=3" in repr(CrossValidationEvaluator(n_jobs=3))
