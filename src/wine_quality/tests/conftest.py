import numpy as np
import pandas as pd
import pytest

from wine_quality.config import DEFAULT_PREDICTORS
from wine_quality.data_loader import QUALITY_DTYPE

RAW_NAMES = {
    "fixed_acidity": "fixed acidity",
    "volatile_acidity": "volatile acidity",
    "citric_acid": "citric acid",
    "residual_sugar": "residual sugar",
    "chlorides": "chlorides",
    "free_sulfur_dioxide": "free sulfur dioxide",
    "total_sulfur_dioxide": "total sulfur dioxide",
    "density": "density",
    "ph": "pH",
    "sulphates": "sulphates",
    "alcohol": "alcohol",
}

# quality score used for each category when writing raw files
SCORES = {"Low": 4, "Medium": 5, "High": 7}


def _wine_frame(counts=(40, 40, 40), seed=0) -> pd.DataFrame:
    """Predictors + ordered category; alcohol and volatile acidity carry the signal."""
    rng = np.random.default_rng(seed)
    labels = np.repeat(["Low", "Medium", "High"], counts)
    codes = pd.Series(labels).map({"Low": 0, "Medium": 1, "High": 2}).to_numpy()
    n = len(labels)

    data = {col: rng.normal(loc=1.0 + i, scale=0.3, size=n) for i, col in enumerate(DEFAULT_PREDICTORS)}
    data["alcohol"] = 9.5 + 1.2 * codes + rng.normal(scale=0.5, size=n)
    data["volatile_acidity"] = 0.7 - 0.15 * codes + rng.normal(scale=0.08, size=n)
    data["density"] = 0.996 + rng.normal(scale=0.002, size=n)
    data["residual_sugar"] = rng.lognormal(mean=0.8, sigma=0.6, size=n)

    df = pd.DataFrame(data)
    df["quality_category"] = pd.Series(labels).astype(QUALITY_DTYPE)
    return df.sample(frac=1.0, random_state=seed).reset_index(drop=True)


@pytest.fixture
def make_wine_frame():
    return _wine_frame


@pytest.fixture
def wine_frame():
    return _wine_frame()


@pytest.fixture
def write_raw_csv(tmp_path):
    """Write a frame in the original file layout: spaced names, ``quality`` score, ``;`` separator."""

    def _write(df: pd.DataFrame, name: str = "wine.csv") -> str:
        raw = df.drop(columns=["quality_category"]).rename(columns=RAW_NAMES)
        raw["quality"] = df["quality_category"].astype(str).map(SCORES).to_numpy()
        path = tmp_path / name
        raw.to_csv(path, sep=";", index=False)
        return str(path)

    return _write
