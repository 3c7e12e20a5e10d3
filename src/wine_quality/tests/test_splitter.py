import numpy as np
import pytest

from wine_quality.splitter import Splitter

TOLERANCE = 0.05


def _split(df, seed=42, n_folds=5):
    return Splitter("quality_category", train_fraction=0.75, n_folds=n_folds, random_state=seed).split(df)


def test_train_test_are_disjoint_and_cover_dataset(make_wine_frame):
    df = make_wine_frame(counts=(60, 180, 60))
    split = _split(df)

    assert len(split.train) + len(split.test) == len(df)
    assert set(split.train.index).isdisjoint(split.test.index)
    assert set(split.train.index) | set(split.test.index) == set(df.index)


def test_folds_partition_training_rows(make_wine_frame):
    df = make_wine_frame(counts=(60, 180, 60))
    split = _split(df)

    val_rows = np.concatenate([val for _, val in split.folds])
    assert len(split.folds) == 5
    assert sorted(val_rows) == list(range(len(split.train)))
    for train_idx, val_idx in split.folds:
        assert set(train_idx).isdisjoint(val_idx)
        assert len(train_idx) + len(val_idx) == len(split.train)


def test_category_proportions_are_preserved(make_wine_frame):
    df = make_wine_frame(counts=(60, 180, 60))
    split = _split(df)
    full = Splitter.proportions(df["quality_category"])

    partitions = [split.train["quality_category"], split.test["quality_category"]]
    partitions += [split.train["quality_category"].iloc[val] for _, val in split.folds]
    for labels in partitions:
        diff = (Splitter.proportions(labels) - full).abs()
        assert (diff < TOLERANCE).all()


def test_same_seed_gives_same_partition(make_wine_frame):
    df = make_wine_frame()
    a = _split(df, seed=3)
    b = _split(df, seed=3)
    c = _split(df, seed=4)

    assert list(a.train.index) == list(b.train.index)
    assert all(np.array_equal(va, vb) for (_, va), (_, vb) in zip(a.folds, b.folds))
    assert list(a.train.index) != list(c.train.index)


def test_split_does_not_mutate_input(wine_frame):
    before = wine_frame.copy(deep=True)
    _split(wine_frame)
    assert wine_frame.equals(before)


@pytest.mark.parametrize("kwargs", [{"train_fraction": 1.0}, {"train_fraction": 0.0}, {"n_folds": 1}])
def test_invalid_arguments_raise(kwargs):
    with pytest.raises(ValueError):
        Splitter("quality_category", **kwargs)


def test_missing_strata_column_raises(wine_frame):
    with pytest.raises(ValueError, match="Stratification"):
        Splitter("grade").split(wine_frame)
