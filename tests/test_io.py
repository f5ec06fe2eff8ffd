"""Round-trip tests for raster / method-table loaders and writers."""

import json

import numpy as np
import pandas as pd
import pytest
from scipy.io import savemat

from data2states.io import (
    load_method_table,
    load_raster,
    results_to_frame,
    write_method_results,
    write_states,
)


@pytest.fixture
def raster():
    rng = np.random.default_rng(0)
    return rng.normal(size=(2, 3, 5))


class TestLoadRaster:
    def test_npy(self, tmp_path, raster):
        path = tmp_path / "raster.npy"
        np.save(path, raster)
        np.testing.assert_array_equal(load_raster(path), raster)

    def test_npz_categories_in_order(self, tmp_path, raster):
        path = tmp_path / "raster.npz"
        np.savez(path, raster, raster[:1])
        loaded = load_raster(path)
        assert isinstance(loaded, list)
        assert [a.shape for a in loaded] == [(2, 3, 5), (1, 3, 5)]

    def test_mat_numeric_restores_singleton_trials(self, tmp_path):
        path = tmp_path / "raster.mat"
        savemat(path, {"data": np.arange(6.0).reshape(2, 3, 1)})
        loaded = load_raster(path)
        assert loaded.shape == (2, 3, 1)

    def test_mat_cell_array(self, tmp_path, raster):
        cells = np.empty((1, 2), dtype=object)
        cells[0, 0] = raster
        cells[0, 1] = raster[:1]
        path = tmp_path / "cells.mat"
        savemat(path, {"cells": cells, "other": np.ones(3)})
        loaded = load_raster(path, variable="cells")
        assert [a.shape for a in loaded] == [(2, 3, 5), (1, 3, 5)]

    def test_mat_requires_variable_when_ambiguous(self, tmp_path, raster):
        path = tmp_path / "two.mat"
        savemat(path, {"a": raster, "b": raster})
        with pytest.raises(ValueError):
            load_raster(path)

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ValueError):
            load_raster(tmp_path / "raster.txt")


class TestLoadMethodTable:
    def test_json_rows(self, tmp_path):
        rows = [[0, "equal-width", [2]], {"variable": 1, "method": "identity"}]
        path = tmp_path / "methods.json"
        path.write_text(json.dumps(rows), encoding="utf-8")
        assert load_method_table(path) == rows

    def test_json_must_be_list(self, tmp_path):
        path = tmp_path / "methods.json"
        path.write_text(json.dumps({"variable": 0}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_method_table(path)

    def test_csv_params_decoded(self, tmp_path):
        path = tmp_path / "methods.csv"
        pd.DataFrame(
            {
                "category": [0, 0],
                "variable": [0, 1],
                "method": ["equal-count", "identity"],
                "params": ["[3]", None],
            }
        ).to_csv(path, index=False)
        rows = load_method_table(path)
        assert rows[0] == {"variable": 0, "method": "equal-count", "params": [3], "category": 0}
        assert rows[1]["params"] is None

    def test_csv_missing_columns(self, tmp_path):
        path = tmp_path / "methods.csv"
        pd.DataFrame({"variable": [0]}).to_csv(path, index=False)
        with pytest.raises(ValueError):
            load_method_table(path)


class TestWriters:
    def test_write_npy(self, tmp_path, raster):
        path = tmp_path / "states.npy"
        write_states(raster, path)
        np.testing.assert_array_equal(np.load(path), raster)

    def test_npy_rejects_lists(self, tmp_path, raster):
        with pytest.raises(ValueError):
            write_states([raster, raster], tmp_path / "states.npy")

    def test_write_npz_round_trip(self, tmp_path, raster):
        path = tmp_path / "states.npz"
        write_states([raster, raster[:1]], path)
        loaded = load_raster(path)
        np.testing.assert_array_equal(loaded[1], raster[:1])

    def test_results_json(self, tmp_path):
        results = [np.empty(0), np.array([[-np.inf, 5.0, np.inf], [1.0, np.nan, np.nan]])]
        path = tmp_path / "results.json"
        write_method_results(results, path)
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [[], [["-inf", 5.0, "inf"], [1.0, None, None]]]

    def test_results_csv(self, tmp_path):
        results = [np.array([[-np.inf, 5.0, np.inf]])]
        path = tmp_path / "results.csv"
        write_method_results(results, path)
        df = pd.read_csv(path)
        assert df["column"].tolist() == [0, 1, 2]
        assert df["value"].iloc[1] == 5.0

    def test_results_frame_skips_unset(self):
        df = results_to_frame([np.array([[1.0, np.nan]]), np.empty(0)])
        assert len(df) == 1
        assert df.iloc[0]["row"] == 0

    def test_unsupported_results_suffix(self, tmp_path):
        with pytest.raises(ValueError):
            write_method_results([], tmp_path / "results.xlsx")
