import os
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .explorer import EdaSummary
from .model_selector import FinalReport
from .model_specs import MODEL_SPECS
from .tuning_result import TuningResult
from .utils.logger import get_logger


def _fmt(value) -> str:
    if isinstance(value, (float, np.floating)):
        return "NA" if np.isnan(value) else f"{value:.4f}"
    if isinstance(value, dict):
        return ", ".join(f"{k}={_fmt(v)}" for k, v in value.items())
    return str(value)


def markdown_table(df: pd.DataFrame, index: bool = False) -> str:
    """Render a DataFrame as a GitHub-flavoured Markdown table."""
    if index:
        df = df.reset_index()
    header = "| " + " | ".join(str(c) for c in df.columns) + " |"
    rule = "|" + "|".join("---" for _ in df.columns) + "|"
    body = ["| " + " | ".join(_fmt(v) for v in row) + " |" for row in df.itertuples(index=False)]
    return "\n".join([header, rule, *body])


class ReportWriter:
    """Assemble EDA, tuning tables, the best-model comparison and test diagnostics into Markdown."""

    def __init__(self, report_path: str, top_n: int = 5):
        self.report_path = report_path
        self.top_n = top_n
        self.logger = get_logger(self.__class__.__name__)

    def _figure(self, title: str, path: Optional[str]) -> List[str]:
        if not path:
            return []
        rel = os.path.relpath(path, os.path.dirname(os.path.abspath(self.report_path)))
        return [f"![{title}]({rel})", ""]

    def _eda_section(self, eda: EdaSummary) -> List[str]:
        lines = ["## Exploratory analysis", ""]
        lines += ["### Descriptive statistics", "", markdown_table(eda.statistics, index=True), ""]
        lines += [
            "### Quality categories", "",
            markdown_table(eda.class_counts, index=True), "",
            f"Majority/minority ratio: {eda.imbalance_ratio:.2f}.", "",
        ]
        lines += self._figure("Class balance", eda.figures.get("class_balance"))
        lines += ["### Correlations", "", "Strongest pairwise correlations:", ""]
        lines += [markdown_table(eda.top_correlations), ""]
        lines += ["Spearman correlation with the quality category:", ""]
        lines += [markdown_table(eda.target_correlations.rename("spearman").to_frame(), index=True), ""]
        for key, title in (
            ("correlation_matrix", "Correlation matrix"),
            ("distributions", "Predictor distributions"),
            ("boxplots", "Predictors by quality category"),
        ):
            lines += self._figure(title, eda.figures.get(key))
        return lines

    def _tuning_section(self, results: List[TuningResult], plots: Dict[str, str]) -> List[str]:
        lines = ["## Grid search", ""]
        for result in results:
            spec = MODEL_SPECS.get(result.model)
            label = spec.label if spec else result.model
            ranked = result.rank().head(self.top_n)
            table = ranked[[*result.param_names, "mean", "std_err", "n"]]
            lines += [
                f"### {label}", "",
                f"Top {len(table)} of {len(result.summarize())} grid points "
                f"({result.n_folds}-fold CV {result.metric}):", "",
                markdown_table(table), "",
            ]
            lines += self._figure(f"{label} grid search", plots.get(result.model))
        return lines

    def _final_section(self, best_table: pd.DataFrame, final: FinalReport) -> List[str]:
        sel = final.selection
        lines = ["## Model comparison", "", markdown_table(best_table), ""]
        lines += [
            f"The best configuration is **{sel.spec.label}** with {_fmt(sel.params)} "
            f"(CV ROC-AUC {sel.cv_mean:.4f} ± {sel.cv_std_err:.4f}). It was refit on the full "
            "training set and evaluated once on the held-out test set.", "",
        ]
        metrics = pd.DataFrame({"metric": list(final.metrics), "value": list(final.metrics.values())})
        lines += ["## Test-set performance", "", markdown_table(metrics), ""]
        lines += ["### Confusion matrix (rows = actual)", "", markdown_table(final.confusion, index=True), ""]
        figures = final.evaluation.figures
        lines += self._figure("Confusion matrix", figures.get("confusion_matrix"))
        lines += self._figure("ROC curves", figures.get("roc_curves"))
        importance = final.evaluation.importance
        if importance is not None:
            lines += ["### Feature importance", "", markdown_table(importance), ""]
            lines += self._figure("Feature importance", figures.get("feature_importance"))
        return lines

    def write(
        self,
        eda: EdaSummary,
        results: List[TuningResult],
        tuning_plots: Dict[str, str],
        best_table: pd.DataFrame,
        final: FinalReport,
        n_train: int,
        n_test: int,
    ) -> str:
        lines = [
            "# Wine quality: model comparison",
            "",
            f"Training rows: {n_train:,}; test rows: {n_test:,}. Models are compared by "
            "one-vs-rest macro ROC-AUC under stratified cross-validation.",
            "",
        ]
        lines += self._eda_section(eda)
        lines += self._tuning_section(results, tuning_plots)
        lines += self._final_section(best_table, final)

        os.makedirs(os.path.dirname(self.report_path) or ".", exist_ok=True)
        with open(self.report_path, "w") as f:
            f.write("\n".join(lines))
        self.logger.info(f"Report written: {self.report_path}")
        return self.report_path
