"""Tests for artifact persistence helpers."""

import pandas as pd
import pytest

from edu_growth.exceptions import ArtifactNotFoundError
from edu_growth.utils import (
    atomic_write,
    load_csv,
    load_joblib,
    load_json,
    save_csv,
    save_joblib,
    save_json,
)


class TestAtomicWrite:

    def test_failure_leaves_nothing(self, tmp_path):
        target = tmp_path / "out" / "table.csv"
        with pytest.raises(RuntimeError):
            with atomic_write(target) as tmp:
                tmp.write_text("partial")
                raise RuntimeError("boom")
        assert not target.exists()
        assert list(target.parent.iterdir()) == []

    def test_failure_keeps_previous_version(self, tmp_path):
        target = tmp_path / "table.csv"
        target.write_text("old")
        with pytest.raises(RuntimeError):
            with atomic_write(target) as tmp:
                tmp.write_text("new")
                raise RuntimeError("boom")
        assert target.read_text() == "old"

    def test_success_replaces(self, tmp_path):
        target = tmp_path / "table.csv"
        target.write_text("old")
        with atomic_write(target) as tmp:
            tmp.write_text("new")
        assert target.read_text() == "new"
        assert not (tmp_path / "table.csv.tmp").exists()


class TestSaveLoad:

    def test_json(self, tmp_path):
        path = tmp_path / "meta.json"
        save_json({"seed": 42, "name": "Côte d'Ivoire"}, path)
        assert load_json(path) == {"seed": 42, "name": "Côte d'Ivoire"}

    def test_joblib(self, tmp_path):
        path = tmp_path / "models" / "obj.joblib"
        save_joblib({"a": [1, 2]}, path)
        assert load_joblib(path) == {"a": [1, 2]}

    def test_csv(self, tmp_path):
        df = pd.DataFrame({"RMSE": [1.25], "R_squared": [0.5]})
        save_csv(df, tmp_path / "metrics.csv")
        pd.testing.assert_frame_equal(load_csv(tmp_path / "metrics.csv"), df)

    @pytest.mark.parametrize("loader", [load_json, load_joblib, load_csv])
    def test_missing_artifact(self, tmp_path, loader):
        with pytest.raises(ArtifactNotFoundError):
            loader(tmp_path / "missing")
