import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from shared import artifacts as A
from shared.io import read_dataset, write_frame
from shared.timer import StageTimer

FIXTURES = Path(__file__).parent / "fixtures"


def test_read_dataset_levels_and_categories():
    df = read_dataset(FIXTURES / "tiny_cells.csv", categorical=["plate"], levels={"class": ["WS", "PS"]})
    assert list(df["class"].cat.categories) == ["WS", "PS"]
    assert list(df["plate"].cat.categories) == ["A", "B", "C"]
    assert len(df) == 80


def test_read_dataset_errors(tmp_path):
    with pytest.raises(ValueError):
        read_dataset(FIXTURES / "tiny_cells.csv", levels={"class": ["PS"]})
    with pytest.raises(KeyError):
        read_dataset(FIXTURES / "tiny_cells.csv", categorical=["colour"])
    with pytest.raises(FileNotFoundError):
        read_dataset(tmp_path / "missing.csv")
    other = tmp_path / "data.txt"
    other.write_text("a,b\n1,2\n")
    with pytest.raises(ValueError):
        read_dataset(other)


def test_write_frame_parquet_roundtrip(tmp_path):
    df = pd.DataFrame({"a": [1, 2, 3], "b": ["x", "y", "z"]})
    path = write_frame(df, tmp_path / "nested" / "frame.parquet")
    pd.testing.assert_frame_equal(read_dataset(path), df)


def test_artifacts_json_and_manifest(tmp_path):
    run_id = A.make_run_id("demo", "regression", "abc123", 7)
    assert run_id.endswith("-demo-regression-abc123-7")
    run_dir = A.path(run_id, tmp_path)
    assert run_dir.is_dir()
    A.save_json(run_dir, "params.json", {"n": np.int64(3), "x": np.float64(0.5), "v": np.arange(2)})
    assert json.loads((run_dir / "params.json").read_text()) == {"n": 3, "x": 0.5, "v": [0, 1]}
    A.save_manifest(run_dir, {"run_id": run_id})
    assert A.load_manifest(run_dir)["run_id"] == run_id
    assert A.load_manifest(tmp_path) == {}


def test_stage_timer_records_stages():
    timer = StageTimer()
    with timer:
        with timer.stage("load"):
            pass
    assert set(timer.as_dict()) == {"load", "total"}
    with pytest.raises(KeyError):
        timer.stop("tune")
