from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold, train_test_split

from .utils.logger import get_logger

Fold = Tuple[np.ndarray, np.ndarray]


@dataclass
class DataSplit:
    """Train/test frames plus positional ``(train_idx, val_idx)`` folds over ``train``."""
    train: pd.DataFrame
    test: pd.DataFrame
    folds: List[Fold]


class Splitter:
    """Stratified train/test split followed by stratified k-fold assignment of the training rows."""

    def __init__(
        self,
        strata: str,
        train_fraction: float = 0.75,
        n_folds: int = 5,
        random_state: int = 42,
    ):
        if not 0.0 < train_fraction < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")
        if n_folds < 2:
            raise ValueError(f"n_folds must be >= 2, got {n_folds}")
        self.strata = strata
        self.train_fraction = train_fraction
        self.n_folds = n_folds
        self.random_state = random_state
        self.logger = get_logger(self.__class__.__name__)

    def split(self, df: pd.DataFrame) -> DataSplit:
        if self.strata not in df.columns:
            raise ValueError(f"Stratification column '{self.strata}' not in data")

        train, test = train_test_split(
            df,
            train_size=self.train_fraction,
            stratify=df[self.strata],
            random_state=self.random_state,
        )
        train = train.copy()
        test = test.copy()

        skf = StratifiedKFold(n_splits=self.n_folds, shuffle=True, random_state=self.random_state)
        folds = list(skf.split(np.zeros(len(train)), train[self.strata]))

        self.logger.info(
            f"Split {len(df):,} rows -> train={len(train):,}, test={len(test):,}, "
            f"{self.n_folds} stratified folds"
        )
        return DataSplit(train=train, test=test, folds=folds)

    @staticmethod
    def proportions(labels: pd.Series) -> pd.Series:
        """Category proportions, including categories with zero rows."""
        return pd.Series(labels).value_counts(normalize=True, sort=False)
