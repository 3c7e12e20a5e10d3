from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.exceptions import NotFittedError
from sklearn.preprocessing import OneHotEncoder

from .exceptions import SchemaMismatchError


class DummyStep(BaseEstimator, TransformerMixin):
    """One-hot encode object/category predictors; unseen levels become all-zero rows."""

    def fit(self, X: pd.DataFrame, y=None) -> "DummyStep":
        self.columns_ = X.select_dtypes(include=["object", "category"]).columns.tolist()
        self.encoder_: Optional[OneHotEncoder] = None
        if self.columns_:
            self.encoder_ = OneHotEncoder(handle_unknown="ignore", sparse_output=False)
            self.encoder_.fit(X[self.columns_].astype(str))
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        if self.encoder_ is None:
            return X.copy()
        encoded = pd.DataFrame(
            self.encoder_.transform(X[self.columns_].astype(str)),
            columns=self.encoder_.get_feature_names_out(self.columns_),
            index=X.index,
        )
        return pd.concat([X.drop(columns=self.columns_), encoded], axis=1)


class ScaleStep(BaseEstimator, TransformerMixin):
    """Divide each named column by its training-set standard deviation."""

    def __init__(self, columns: Sequence[str] = ()):
        self.columns = columns

    def fit(self, X: pd.DataFrame, y=None) -> "ScaleStep":
        missing = [c for c in self.columns if c not in X.columns]
        if missing:
            raise SchemaMismatchError(f"Scale columns not found: {missing}")
        factors = {}
        for col in self.columns:
            sd = float(X[col].std(ddof=1))
            # constant or single-row columns are left unscaled
            factors[col] = sd if np.isfinite(sd) and sd > 0 else 1.0
        self.factors_ = factors
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        out = X.copy()
        for col, factor in self.factors_.items():
            out[col] = out[col] / factor
        return out


class InteractionStep(BaseEstimator, TransformerMixin):
    """Add ``<left>_x_<right>``, the elementwise product of two columns."""

    def __init__(self, left: str = "", right: str = ""):
        self.left = left
        self.right = right

    @property
    def name(self) -> str:
        return f"{self.left}_x_{self.right}"

    def fit(self, X: pd.DataFrame, y=None) -> "InteractionStep":
        missing = [c for c in (self.left, self.right) if c not in X.columns]
        if missing:
            raise SchemaMismatchError(f"Interaction columns not found: {missing}")
        self.fitted_ = True
        return self

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        out = X.copy()
        out[self.name] = out[self.left] * out[self.right]
        return out


class Recipe(BaseEstimator, TransformerMixin):
    """Ordered, named feature steps fitted once on training data and re-applied anywhere.

    ``transform``/``apply`` never refit and never mutate their input. Data whose
    column set differs from the one seen at fit time raises ``SchemaMismatchError``.
    """

    def __init__(self, steps: List[Tuple[str, TransformerMixin]]):
        self.steps = steps

    def fit(self, X: pd.DataFrame, y=None) -> "Recipe":
        self.feature_names_in_ = list(X.columns)
        out = X
        for _, step in self.steps:
            out = step.fit(out).transform(out)
        self.feature_names_out_ = list(out.columns)
        return self

    def _check_schema(self, X: pd.DataFrame) -> None:
        if not hasattr(self, "feature_names_in_"):
            raise NotFittedError("Recipe must be fitted before it is applied.")
        expected, got = set(self.feature_names_in_), set(X.columns)
        if expected != got:
            raise SchemaMismatchError(
                f"Column set differs from fit: missing={sorted(expected - got)}, "
                f"unexpected={sorted(got - expected)}"
            )

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        self._check_schema(X)
        out = X[self.feature_names_in_]
        for _, step in self.steps:
            out = step.transform(out)
        return out

    def apply(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.transform(X)

    def get_feature_names_out(self, input_features=None) -> np.ndarray:
        return np.asarray(self.feature_names_out_, dtype=object)

    @property
    def scale_factors(self) -> dict:
        """Fitted per-column scale factors of every ``ScaleStep``."""
        factors = {}
        for _, step in self.steps:
            if isinstance(step, ScaleStep):
                factors.update(step.factors_)
        return factors


def build_recipe(scale_columns: Sequence[str], interaction: Sequence[str]) -> Recipe:
    """dummy -> scale -> interaction, in that order."""
    left, right = interaction
    return Recipe(
        steps=[
            ("dummy", DummyStep()),
            ("scale", ScaleStep(columns=tuple(scale_columns))),
            ("interact", InteractionStep(left=left, right=right)),
        ]
    )
