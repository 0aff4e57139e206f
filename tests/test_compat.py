"""Tests for tabular input normalisation."""

import pandas as pd
import pytest

from glm_crossval import Dataset
from glm_crossval._compat import as_pandas_frame


class TestAsPandasFrame:
    def test_pandas_passthrough(self):
        df = pd.DataFrame({"a": [1, 2, 3]})
        assert as_pandas_frame(df) is df  # exact same object, no copy

    def test_column_mapping(self):
        result = as_pandas_frame({"a": [1, 2], "b": ["x", "y"]})
        assert isinstance(result, pd.DataFrame)
        assert list(result.columns) == ["a", "b"]
        assert result["a"].tolist() == [1, 2]

    def test_record_list(self):
        result = as_pandas_frame([{"a": 1, "b": 2.0}, {"a": 3, "b": 4.0}])
        assert result.shape == (2, 2)
        assert result["b"].tolist() == [2.0, 4.0]

    def test_rejects_invalid_type(self):
        with pytest.raises(TypeError, match="must be a pandas"):
            as_pandas_frame(42)

    def test_rejects_string(self):
        with pytest.raises(TypeError):
            as_pandas_frame("a,b\n1,2")

    def test_error_includes_name(self):
        with pytest.raises(TypeError, match="'records'"):
            as_pandas_frame(3.5, name="records")


class TestPolarsInput:
    def test_polars_converted(self):
        pl = pytest.importorskip("polars")
        pytest.importorskip("pyarrow")
        result = as_pandas_frame(pl.DataFrame({"a": [1, 2, 3]}))
        assert isinstance(result, pd.DataFrame)
        assert result["a"].tolist() == [1, 2, 3]

    def test_polars_lazyframe_collected_and_converted(self):
        pl = pytest.importorskip("polars")
        pytest.importorskip("pyarrow")
        lf = pl.DataFrame({"a": [1, 2, 3]}).lazy()
        result = as_pandas_frame(lf)
        assert result["a"].tolist() == [1, 2, 3]

    def test_dataset_from_polars(self):
        pl = pytest.importorskip("polars")
        pytest.importorskip("pyarrow")
        ds = Dataset.from_frame(
            pl.DataFrame({"y": [0, 2, 5], "grp": ["a", "b", "a"]}), response="y"
        )
        assert ds.n_records == 3
        assert ds.is_categorical("grp")
