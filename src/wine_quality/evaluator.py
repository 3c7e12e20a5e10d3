import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from sklearn.metrics import accuracy_score, confusion_matrix, roc_auc_score, roc_curve
from sklearn.pipeline import Pipeline

from .data_loader import CATEGORY_ORDER
from .model_trainer import multiclass_roc_auc
from .utils.logger import get_logger


@dataclass
class Evaluation:
    metrics: Dict[str, float]
    confusion: pd.DataFrame
    roc_curves: Dict[str, pd.DataFrame]
    importance: Optional[pd.DataFrame]
    figures: Dict[str, str] = field(default_factory=dict)


def feature_importance(pipeline: Pipeline) -> Optional[pd.DataFrame]:
    """Impurity/split importance for tree models, mean |coef| for linear ones, else None."""
    model = pipeline.named_steps["model"]
    names = list(pipeline.named_steps["recipe"].get_feature_names_out())

    if hasattr(model, "feature_importances_"):
        values = np.asarray(model.feature_importances_, dtype=float)
        total = values.sum()
        if total > 0:
            values = values / total
    else:
        try:
            values = np.abs(np.asarray(model.coef_, dtype=float)).mean(axis=0)
        except AttributeError:
            return None

    return (
        pd.DataFrame({"feature": names, "importance": values})
        .sort_values("importance", ascending=False, kind="stable")
        .reset_index(drop=True)
    )


class Evaluator:
    """Evaluate multi-class probabilities on the test set, save metrics and diagnostic plots."""

    def __init__(
        self,
        metrics_path: str,
        figures_dir: str = "artifacts",
        labels: List[str] = CATEGORY_ORDER,
        plot: bool = True,
        verbose: bool = True,
    ):
        self.metrics_path = metrics_path
        self.figures_dir = figures_dir
        self.labels = list(labels)
        self.plot = plot
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    def _save(self, name: str) -> str:
        os.makedirs(self.figures_dir, exist_ok=True)
        path = os.path.join(self.figures_dir, name)
        plt.tight_layout()
        plt.savefig(path, dpi=200)
        plt.close()
        if self.verbose:
            self.logger.info(f"Saved figure: {path}")
        return path

    def confusion(self, y_true, y_pred) -> pd.DataFrame:
        """Counts with rows = actual and columns = predicted category."""
        cm = confusion_matrix(y_true, y_pred, labels=self.labels)
        return pd.DataFrame(
            cm,
            index=pd.Index(self.labels, name="actual"),
            columns=pd.Index(self.labels, name="predicted"),
        )

    def roc_curves(self, y_true, y_proba: np.ndarray) -> Dict[str, pd.DataFrame]:
        """One-vs-rest ROC curve per category."""
        y_true = np.asarray(y_true, dtype=object)
        curves = {}
        for j, label in enumerate(self.labels):
            positive = (y_true == label).astype(int)
            if positive.min() == positive.max():
                continue
            fpr, tpr, thresholds = roc_curve(positive, y_proba[:, j])
            curves[label] = pd.DataFrame({"fpr": fpr, "tpr": tpr, "threshold": thresholds})
        return curves

    def _plot_confusion_matrix(self, cm: pd.DataFrame) -> str:
        plt.figure(figsize=(6, 5))
        sns.heatmap(cm, annot=True, fmt="d", cmap="Blues")
        plt.xlabel("Predicted")
        plt.ylabel("Actual")
        plt.title("Confusion Matrix (test set)")
        return self._save("confusion_matrix.png")

    def _plot_roc_curves(self, curves: Dict[str, pd.DataFrame], per_class: Dict[str, float]) -> str:
        plt.figure(figsize=(6, 5))
        for label, curve in curves.items():
            sns.lineplot(
                x=curve["fpr"], y=curve["tpr"], label=f"{label} (AUC={per_class[label]:.3f})",
                estimator=None, sort=False,
            )
        plt.plot([0, 1], [0, 1], linestyle="--", color="grey")
        plt.xlabel("False positive rate")
        plt.ylabel("True positive rate")
        plt.title("One-vs-rest ROC curves (test set)")
        plt.legend()
        return self._save("roc_curves.png")

    def _plot_importance(self, importance: pd.DataFrame, title: str) -> str:
        plt.figure(figsize=(7, 5))
        sns.barplot(data=importance, x="importance", y="feature", color="steelblue")
        plt.xlabel("Importance")
        plt.ylabel("")
        plt.title(title)
        return self._save("feature_importance.png")

    def evaluate(self, pipeline: Pipeline, y_true, y_proba: np.ndarray, model_label: str = "") -> Evaluation:
        """Compute test metrics and diagnostics, save JSON + figures."""
        y_true = np.asarray(y_true, dtype=object)
        y_proba = np.asarray(y_proba, dtype=float)
        y_pred = np.asarray(self.labels, dtype=object)[np.argmax(y_proba, axis=1)]

        curves = self.roc_curves(y_true, y_proba)
        per_class = {
            label: float(roc_auc_score((y_true == label).astype(int), y_proba[:, self.labels.index(label)]))
            for label in curves
        }

        metrics: Dict[str, float] = {
            "ROC_AUC": multiclass_roc_auc(y_true, y_proba, self.labels),
            "Accuracy": float(accuracy_score(y_true, y_pred)),
            **{f"ROC_AUC_{label}": value for label, value in per_class.items()},
        }

        os.makedirs(os.path.dirname(self.metrics_path) or ".", exist_ok=True)
        with open(self.metrics_path, "w") as f:
            json.dump(metrics, f, indent=4)
        if self.verbose:
            self.logger.info(f"Saved metrics: {self.metrics_path}")

        cm = self.confusion(y_true, y_pred)
        importance = feature_importance(pipeline)

        evaluation = Evaluation(metrics=metrics, confusion=cm, roc_curves=curves, importance=importance)
        if self.plot:
            evaluation.figures["confusion_matrix"] = self._plot_confusion_matrix(cm)
            evaluation.figures["roc_curves"] = self._plot_roc_curves(curves, per_class)
            if importance is not None:
                evaluation.figures["feature_importance"] = self._plot_importance(
                    importance, f"Feature importance ({model_label})" if model_label else "Feature importance"
                )
        return evaluation
