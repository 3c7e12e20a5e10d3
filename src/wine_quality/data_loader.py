import re
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_PREDICTORS
from .exceptions import DataFormatError
from .utils.logger import get_logger

CATEGORY_ORDER = ["Low", "Medium", "High"]
QUALITY_DTYPE = pd.CategoricalDtype(CATEGORY_ORDER, ordered=True)

# (lower bound, label); a score maps to the first bound it strictly exceeds
QUALITY_BREAKS = ((6, "High"), (4, "Medium"), (2, "Low"))
QUALITY_RANGE = (0, 10)


def normalize_column_name(name: str) -> str:
    """``"Free Sulfur Dioxide"`` -> ``"free_sulfur_dioxide"``."""
    return re.sub(r"[^0-9a-z]+", "_", str(name).strip().lower()).strip("_")


def derive_quality_category(scores: pd.Series) -> pd.Series:
    """Map numeric quality scores onto the ordered Low/Medium/High category.

    Scores at or below the lowest break fall into ``Low``.
    """
    scores = pd.Series(scores)
    labels = np.select(
        [scores > bound for bound, _ in QUALITY_BREAKS],
        [label for _, label in QUALITY_BREAKS],
        default="Low",
    )
    return pd.Series(labels, index=scores.index, name=scores.name).astype(QUALITY_DTYPE)


class DataLoader:
    """Loads the delimited wine-quality file and derives the ordered target category."""

    def __init__(
        self,
        path: str,
        sep: str = ";",
        predictors: Iterable[str] = DEFAULT_PREDICTORS,
        target_col: str = "quality",
        category_col: str = "quality_category",
        sample_size: Optional[int] = None,
        drop_duplicates: bool = False,
        random_state: int = 42,
    ):
        self.path = path
        self.sep = sep
        self.predictors = list(predictors)
        self.target_col = target_col
        self.category_col = category_col
        self.sample_size = sample_size
        self.drop_duplicates = drop_duplicates
        self.random_state = random_state
        self.logger = get_logger(self.__class__.__name__)

    def _validate(self, df: pd.DataFrame) -> None:
        expected = self.predictors + [self.target_col]
        missing = [c for c in expected if c not in df.columns]
        if missing:
            raise DataFormatError(f"{self.path}: missing expected columns {missing}")

        non_numeric = [c for c in expected if not pd.api.types.is_numeric_dtype(df[c])]
        if non_numeric:
            raise DataFormatError(f"{self.path}: non-numeric values in columns {non_numeric}")

        scores = df[self.target_col]
        lo, hi = QUALITY_RANGE
        out_of_range = scores[(scores < lo) | (scores > hi) | scores.isna()]
        if len(out_of_range):
            raise DataFormatError(
                f"{self.path}: {len(out_of_range)} {self.target_col} value(s) outside [{lo}, {hi}]"
            )

    def load(self) -> pd.DataFrame:
        try:
            df = pd.read_csv(self.path, sep=self.sep)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise DataFormatError(f"{self.path}: cannot parse delimited file ({exc})") from exc

        df.columns = [normalize_column_name(c) for c in df.columns]
        self._validate(df)

        if self.drop_duplicates:
            n_before = len(df)
            df = df.drop_duplicates(keep="first").reset_index(drop=True)
            if n_before > len(df):
                self.logger.info(f"Removed {n_before - len(df)} duplicate row(s)")

        if self.sample_size:
            if self.sample_size > len(df):
                raise DataFormatError(
                    f"{self.path}: sample_size={self.sample_size} exceeds the {len(df)} available row(s)"
                )
            df = df.sample(self.sample_size, random_state=self.random_state).reset_index(drop=True)

        low_scores = int((df[self.target_col] <= QUALITY_BREAKS[-1][0]).sum())
        if low_scores:
            self.logger.warning(f"{low_scores} row(s) with {self.target_col} <= 2 mapped to 'Low'")

        df[self.category_col] = derive_quality_category(df[self.target_col])
        df = df[self.predictors + [self.category_col]].copy()

        self.logger.info(
            f"Loaded {self.path}: {df.shape[0]:,} rows x {len(self.predictors)} predictors"
        )
        return df
