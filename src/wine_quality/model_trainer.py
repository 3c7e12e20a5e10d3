import os
import warnings
from typing import Any, Callable, List, Optional

import joblib
import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning
from sklearn.metrics import roc_auc_score
from sklearn.pipeline import Pipeline

from .data_loader import CATEGORY_ORDER
from .exceptions import FitError, SchemaMismatchError
from .model_specs import GridPoint, ModelSpec
from .recipe import Recipe
from .splitter import Fold
from .utils.logger import get_logger


def multiclass_roc_auc(y_true, proba: np.ndarray, labels: List[str] = CATEGORY_ORDER) -> float:
    """One-vs-rest ROC-AUC averaged (unweighted) over the categories.

    ``proba`` columns follow ``labels``; sklearn wants sorted labels, so columns are reordered.
    """
    order = np.argsort(labels)
    return float(
        roc_auc_score(
            np.asarray(y_true, dtype=object),
            np.asarray(proba)[:, order],
            multi_class="ovr",
            average="macro",
            labels=[labels[i] for i in order],
        )
    )


class ModelTrainer:
    """
    Grid-point evaluation for one classifier family with leakage-safe cross-validation:
    a fresh recipe is fit on each fold's training portion only, then applied to the
    held-out portion.

    Provides:
      - cross_validate: per-fold ROC-AUC for one grid point (NaN where the fit fails)
      - fit_final: fits recipe + classifier on the full training set and saves it
      - predict_proba_test: applies the final pipeline to new data
    """

    def __init__(
        self,
        spec: ModelSpec,
        folds: List[Fold],
        recipe_factory: Callable[[], Recipe],
        random_state: int = 42,
        n_jobs: int = 1,
        max_iter: int = 1000,
        strict_convergence: bool = False,
        model_path: Optional[str] = None,
    ):
        self.spec = spec
        self.folds = folds
        self.recipe_factory = recipe_factory
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.max_iter = max_iter
        self.strict_convergence = strict_convergence
        self.model_path = model_path

        self.logger = get_logger(self.__class__.__name__)
        self.final_pipeline: Optional[Pipeline] = None

    @property
    def n_splits(self) -> int:
        return len(self.folds)

    def build_pipeline(self, params: GridPoint) -> Pipeline:
        model = self.spec.build(
            params, random_state=self.random_state, n_jobs=self.n_jobs, max_iter=self.max_iter
        )
        return Pipeline(steps=[("recipe", self.recipe_factory()), ("model", model)])

    def _fit(self, pipeline: Pipeline, X: pd.DataFrame, y: np.ndarray, params: GridPoint) -> Pipeline:
        """Fit, turning estimator errors (and optionally non-convergence) into ``FitError``."""
        with warnings.catch_warnings():
            warnings.simplefilter("error" if self.strict_convergence else "ignore", ConvergenceWarning)
            warnings.filterwarnings("ignore", message="'penalty' was deprecated", category=FutureWarning)
            try:
                return pipeline.fit(X, y)
            except SchemaMismatchError:
                raise
            except (ValueError, ArithmeticError, np.linalg.LinAlgError, ConvergenceWarning) as exc:
                raise FitError(f"{self.spec.name} {params}: {exc}") from exc

    def _class_proba(self, pipeline: Pipeline, X: pd.DataFrame) -> np.ndarray:
        """Predicted probabilities with columns in ``CATEGORY_ORDER``; absent classes get 0."""
        raw = pipeline.predict_proba(X)
        classes = list(pipeline.classes_)
        proba = np.zeros((len(X), len(CATEGORY_ORDER)))
        for j, label in enumerate(CATEGORY_ORDER):
            if label in classes:
                proba[:, j] = raw[:, classes.index(label)]
        return proba

    def cross_validate(self, X_df: pd.DataFrame, y, params: GridPoint) -> List[float]:
        """ROC-AUC on every fold's held-out portion for a single grid point."""
        y = np.asarray(y, dtype=object)
        fold_aucs: List[float] = []

        for fold, (train_idx, val_idx) in enumerate(self.folds, start=1):
            X_train = X_df.iloc[train_idx]
            X_val = X_df.iloc[val_idx]
            try:
                pipeline = self._fit(self.build_pipeline(params), X_train, y[train_idx], params)
            except FitError as exc:
                self.logger.warning(f"Fold {fold}/{self.n_splits} failed: {exc}")
                fold_aucs.append(float("nan"))
                continue

            try:
                auc = multiclass_roc_auc(y[val_idx], self._class_proba(pipeline, X_val))
            except SchemaMismatchError:
                raise
            except ValueError as exc:
                # e.g. a category absent from the held-out portion
                self.logger.warning(f"Fold {fold}/{self.n_splits} not scorable: {exc}")
                auc = float("nan")
            fold_aucs.append(auc)
            self.logger.debug(f"{self.spec.name} {params} fold {fold}/{self.n_splits} ROC-AUC: {auc:.4f}")

        return fold_aucs

    def fit_final(self, X_df: pd.DataFrame, y, params: GridPoint) -> Pipeline:
        """Fit recipe + classifier on the whole training set and save the pipeline."""
        y = np.asarray(y, dtype=object)
        self.final_pipeline = self._fit(self.build_pipeline(params), X_df, y, params)

        if self.model_path:
            os.makedirs(os.path.dirname(self.model_path) or ".", exist_ok=True)
            joblib.dump(self.final_pipeline, self.model_path)
            self.logger.info(f"Saved model: {self.model_path}")

        return self.final_pipeline

    def predict_proba_test(self, X_test_df: pd.DataFrame) -> np.ndarray:
        """
        Class probabilities (columns in Low/Medium/High order) from the final pipeline.
        Assumes fit_final was called in the same process.
        """
        if self.final_pipeline is None:
            raise RuntimeError("Call fit_final() before predict_proba_test().")
        return self._class_proba(self.final_pipeline, X_test_df)

