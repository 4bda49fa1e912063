import numpy as np
import pandas as pd
import pytest

from tidyml.errors import SplitError
from tidyml.splits import initial_split, vfold_cv


def _frame(n=100, seed=0):
    rng = np.random.RandomState(seed)
    return pd.DataFrame(
        {
            "x": rng.normal(size=n),
            "y": rng.normal(size=n),
            "cls": ["a"] * (n // 2) + ["b"] * (n - n // 2),
        }
    )


def test_initial_split_partitions_rows():
    df = _frame()
    split = initial_split(df, prop=0.75, seed=1)
    assert len(split.in_id) == 75
    assert len(split.out_id) == 25
    assert set(split.in_id).isdisjoint(split.out_id)
    assert sorted(np.concatenate([split.in_id, split.out_id]).tolist()) == list(range(100))
    assert split.training().index.tolist() == split.in_id.tolist()


def test_initial_split_stratified_keeps_balance():
    df = _frame()
    split = initial_split(df, prop=0.75, strata="cls", seed=3)
    counts = split.training()["cls"].value_counts()
    assert set(counts.tolist()) <= {37, 38}
    assert counts.sum() == 75


def test_initial_split_is_deterministic_under_seed():
    df = _frame()
    a = initial_split(df, prop=0.8, seed=11)
    b = initial_split(df, prop=0.8, seed=11)
    assert (a.in_id == b.in_id).all()
    assert (a.out_id == b.out_id).all()


def test_vfold_each_row_held_out_once():
    train = _frame(75)
    folds = vfold_cv(train, v=5, seed=2)
    assert folds.ids == ["Fold1", "Fold2", "Fold3", "Fold4", "Fold5"]
    held_out = np.concatenate([s.out_id for s in folds])
    assert sorted(held_out.tolist()) == list(range(75))
    for s in folds:
        assert len(s.out_id) == 15
        assert len(s.in_id) == 60
        assert set(s.in_id).isdisjoint(s.out_id)


def test_vfold_ids_are_zero_padded_and_repeated():
    df = _frame(40)
    assert vfold_cv(df, v=10, seed=0).ids[:2] == ["Fold01", "Fold02"]
    folds = vfold_cv(df, v=4, repeats=2, seed=0)
    assert len(folds) == 8
    assert folds.ids[0] == "Repeat1_Fold1"
    assert folds.ids[-1] == "Repeat2_Fold4"


def test_vfold_stratified_balance():
    df = _frame(100)
    folds = vfold_cv(df, v=5, strata="cls", seed=7)
    for s in folds:
        counts = s.assessment()["cls"].value_counts()
        assert counts["a"] == 10
        assert counts["b"] == 10


def test_numeric_strata_is_binned():
    df = _frame(100)
    split = initial_split(df, prop=0.5, strata="x", seed=0)
    assert len(split.in_id) == 50


def test_split_errors():
    df = _frame(20)
    with pytest.raises(SplitError):
        initial_split(df, prop=1.0)
    with pytest.raises(SplitError):
        vfold_cv(df, v=25)
    with pytest.raises(SplitError):
        vfold_cv(df, v=1)
    with pytest.raises(SplitError):
        initial_split(df, strata="missing")
    rare = df.assign(cls=["a"] * 19 + ["b"])
    with pytest.raises(SplitError):
        vfold_cv(rare, v=5, strata="cls")
