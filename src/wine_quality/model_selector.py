from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .evaluator import Evaluation, Evaluator
from .exceptions import FitError
from .model_specs import MODEL_SPECS, ModelSpec
from .model_trainer import ModelTrainer
from .tuning_result import TuningResult
from .utils.logger import get_logger


@dataclass
class Selection:
    spec: ModelSpec
    params: Dict[str, Any]
    cv_mean: float
    cv_std_err: float


@dataclass
class FinalReport:
    selection: Selection
    evaluation: Evaluation
    model_path: Optional[str] = None

    @property
    def metrics(self) -> Dict[str, float]:
        return self.evaluation.metrics

    @property
    def confusion(self) -> pd.DataFrame:
        return self.evaluation.confusion


class ModelSelector:
    """Pick the best grid point per trainer, the overall winner, then refit and test it once."""

    def __init__(self, category_col: str, evaluator: Evaluator):
        self.category_col = category_col
        self.evaluator = evaluator
        self.logger = get_logger(self.__class__.__name__)

    @staticmethod
    def best_per_trainer(results: List[TuningResult]) -> pd.DataFrame:
        """One row per trainer; mean and std_err come from the same summary row."""
        rows = []
        for result in results:
            ranked = result.rank()
            best = ranked.iloc[0]
            rows.append(
                {
                    "model": result.model,
                    "mean": best["mean"],
                    "std_err": best["std_err"],
                    "n": int(best["n"]),
                    "params": {name: best[name] for name in result.param_names},
                }
            )
        return pd.DataFrame(rows, columns=["model", "mean", "std_err", "n", "params"])

    def select(self, results: List[TuningResult]) -> Selection:
        """Overall winner by best CV mean; the earlier trainer wins ties."""
        if not results:
            raise ValueError("No tuning results to select from")
        table = self.best_per_trainer(results)
        ranked = table.sort_values("mean", ascending=False, kind="stable", na_position="last")
        top = ranked.iloc[0]
        if pd.isna(top["mean"]):
            raise FitError("No trainer produced a complete cross-validation score")

        winner = results[int(ranked.index[0])]
        selection = Selection(
            spec=MODEL_SPECS[winner.model],
            params=winner.best_params(),
            cv_mean=float(top["mean"]),
            cv_std_err=float(top["std_err"]),
        )
        self.logger.info(
            f"Selected {selection.spec.label} {selection.params} "
            f"(CV ROC-AUC {selection.cv_mean:.4f} ± {selection.cv_std_err:.4f})"
        )
        return selection

    def finalize(
        self,
        selection: Selection,
        trainer: ModelTrainer,
        train: pd.DataFrame,
        test: pd.DataFrame,
    ) -> FinalReport:
        """Refit the winner on the whole training set and evaluate it once on the test set."""
        X_train = train.drop(columns=[self.category_col])
        X_test = test.drop(columns=[self.category_col])
        y_train = np.asarray(train[self.category_col], dtype=object)
        y_test = np.asarray(test[self.category_col], dtype=object)

        pipeline = trainer.fit_final(X_train, y_train, selection.params)
        y_proba = trainer.predict_proba_test(X_test)

        evaluation = self.evaluator.evaluate(pipeline, y_test, y_proba, model_label=selection.spec.label)
        self.logger.info(
            f"Test ROC-AUC: {evaluation.metrics['ROC_AUC']:.4f}, accuracy: {evaluation.metrics['Accuracy']:.4f}"
        )
        return FinalReport(selection=selection, evaluation=evaluation, model_path=trainer.model_path)
