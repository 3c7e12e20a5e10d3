import logging

import pandas as pd
import pytest

from wine_quality.config import DEFAULT_PREDICTORS
from wine_quality.data_loader import (
    CATEGORY_ORDER,
    DataLoader,
    derive_quality_category,
    normalize_column_name,
)
from wine_quality.exceptions import DataFormatError


def test_quality_thresholds():
    scores = pd.Series([7, 5, 3, 10, 6, 4, 8])
    labels = derive_quality_category(scores)
    assert list(labels) == ["High", "Medium", "Low", "High", "Medium", "Low", "High"]


def test_scores_at_or_below_two_map_to_low():
    labels = derive_quality_category(pd.Series([2, 1, 0]))
    assert list(labels) == ["Low", "Low", "Low"]


def test_category_is_ordered():
    labels = derive_quality_category(pd.Series([3, 5, 7]))
    assert labels.cat.ordered
    assert list(labels.cat.categories) == CATEGORY_ORDER
    assert labels.iloc[0] < labels.iloc[1] < labels.iloc[2]


def test_normalize_column_name():
    assert normalize_column_name("free sulfur dioxide") == "free_sulfur_dioxide"
    assert normalize_column_name("  Fixed Acidity ") == "fixed_acidity"
    assert normalize_column_name("pH") == "ph"


def test_load_normalizes_columns_and_drops_quality(wine_frame, write_raw_csv):
    path = write_raw_csv(wine_frame)

    df = DataLoader(path).load()

    assert list(df.columns) == list(DEFAULT_PREDICTORS) + ["quality_category"]
    assert "quality" not in df.columns
    assert len(df) == len(wine_frame)
    pd.testing.assert_series_equal(
        df["quality_category"], wine_frame["quality_category"], check_names=False
    )


def test_load_missing_column_raises(wine_frame, write_raw_csv):
    path = write_raw_csv(wine_frame.drop(columns=["alcohol"]))

    with pytest.raises(DataFormatError, match="alcohol"):
        DataLoader(path).load()


def test_load_non_numeric_column_raises(wine_frame, write_raw_csv):
    bad = wine_frame.copy()
    bad["chlorides"] = bad["chlorides"].astype(object)
    bad.loc[0, "chlorides"] = "abc"
    path = write_raw_csv(bad)

    with pytest.raises(DataFormatError, match="chlorides"):
        DataLoader(path).load()


def test_load_out_of_range_quality_raises(tmp_path, wine_frame):
    raw = wine_frame.drop(columns=["quality_category"])
    raw["quality"] = 5
    raw.loc[3, "quality"] = 11
    path = tmp_path / "wine.csv"
    raw.to_csv(path, sep=";", index=False)

    with pytest.raises(DataFormatError, match="outside"):
        DataLoader(str(path)).load()


def test_data_loader_sampling_is_deterministic(wine_frame, write_raw_csv):
    path = write_raw_csv(wine_frame)

    s1 = DataLoader(path, sample_size=20, random_state=7).load()
    s2 = DataLoader(path, sample_size=20, random_state=7).load()

    assert len(s1) == 20
    pd.testing.assert_frame_equal(s1, s2)


def test_drop_duplicates(wine_frame, write_raw_csv):
    doubled = pd.concat([wine_frame, wine_frame.head(5)], ignore_index=True)
    path = write_raw_csv(doubled)

    df = DataLoader(path, drop_duplicates=True).load()

    assert len(df) == len(wine_frame)


def test_sample_size_larger_than_file_raises(wine_frame, write_raw_csv):
    path = write_raw_csv(wine_frame)

    with pytest.raises(DataFormatError, match="sample_size"):
        DataLoader(path, sample_size=len(wine_frame) + 1).load()


def test_scores_at_or_below_two_are_logged(tmp_path, wine_frame, caplog):
    raw = wine_frame.drop(columns=["quality_category"])
    raw["quality"] = 5
    raw.loc[[0, 1], "quality"] = [2, 1]
    path = tmp_path / "wine.csv"
    raw.to_csv(path, sep=";", index=False)

    loader = DataLoader(str(path))
    # component loggers do not propagate to the root handler caplog installs
    loader.logger.addHandler(caplog.handler)
    try:
        df = loader.load()
    finally:
        loader.logger.removeHandler(caplog.handler)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "2 row(s)" in warnings[0].getMessage()
    assert df["quality_category"].iloc[:2].tolist() == ["Low", "Low"]
