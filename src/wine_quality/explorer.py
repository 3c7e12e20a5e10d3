import os
from dataclasses import dataclass, field
from typing import Dict

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from .utils.logger import get_logger


@dataclass
class EdaSummary:
    statistics: pd.DataFrame
    class_counts: pd.DataFrame
    imbalance_ratio: float
    correlations: pd.DataFrame
    top_correlations: pd.DataFrame
    target_correlations: pd.Series
    figures: Dict[str, str] = field(default_factory=dict)


class Explorer:
    """Descriptive statistics, correlation analysis and EDA figures for the loaded dataset."""

    def __init__(self, category_col: str, figures_dir: str = "artifacts", plot: bool = True, top_k: int = 5):
        self.category_col = category_col
        self.figures_dir = figures_dir
        self.plot = plot
        self.top_k = top_k
        self.logger = get_logger(self.__class__.__name__)

    def _numeric(self, df: pd.DataFrame) -> pd.DataFrame:
        return df.drop(columns=[self.category_col]).select_dtypes(include=["number"])

    def summary_statistics(self, df: pd.DataFrame) -> pd.DataFrame:
        numeric = self._numeric(df)
        stats = numeric.describe().T
        stats["skew"] = numeric.skew()
        return stats

    def class_distribution(self, df: pd.DataFrame) -> pd.DataFrame:
        counts = df[self.category_col].value_counts(sort=False)
        return pd.DataFrame({"count": counts, "proportion": counts / counts.sum()})

    def correlation_matrix(self, df: pd.DataFrame, method: str = "pearson") -> pd.DataFrame:
        return self._numeric(df).corr(method=method)

    def top_correlations(self, corr: pd.DataFrame, k: int = 5) -> pd.DataFrame:
        """The ``k`` strongest pairwise correlations by absolute value (each pair once)."""
        cols = list(corr.columns)
        pairs = pd.DataFrame(
            [
                {"left": a, "right": b, "correlation": corr.loc[a, b]}
                for i, a in enumerate(cols)
                for b in cols[i + 1:]
            ],
            columns=["left", "right", "correlation"],
        ).dropna(subset=["correlation"])
        order = pairs["correlation"].abs().sort_values(ascending=False, kind="stable").index
        return pairs.loc[order].head(k).reset_index(drop=True)

    def target_correlations(self, df: pd.DataFrame) -> pd.Series:
        """Spearman correlation of each predictor with the ordinal category codes."""
        codes = pd.Series(df[self.category_col].cat.codes, index=df.index).astype(float)
        corr = self._numeric(df).corrwith(codes, method="spearman")
        return corr.reindex(corr.abs().sort_values(ascending=False).index)

    def _save(self, fig, name: str) -> str:
        os.makedirs(self.figures_dir, exist_ok=True)
        path = os.path.join(self.figures_dir, name)
        fig.tight_layout()
        fig.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        self.logger.info(f"Saved figure: {path}")
        return path

    def _plot_class_balance(self, counts: pd.DataFrame) -> str:
        fig, ax = plt.subplots(figsize=(6, 4))
        sns.barplot(x=counts.index.astype(str), y=counts["count"], color="steelblue", ax=ax)
        ax.set_title("Quality category distribution")
        ax.set_xlabel("")
        ax.set_ylabel("Count")
        return self._save(fig, "eda_class_balance.png")

    def _plot_distributions(self, df: pd.DataFrame) -> str:
        numeric = self._numeric(df)
        ncols = 3
        nrows = (numeric.shape[1] + ncols - 1) // ncols
        fig, axes = plt.subplots(nrows, ncols, figsize=(5 * ncols, 3.5 * nrows))
        axes = np.atleast_1d(axes).ravel()
        for ax, col in zip(axes, numeric.columns):
            sns.histplot(numeric[col], bins=30, ax=ax, color="steelblue")
            ax.set_title(col)
            ax.set_xlabel("")
        for ax in axes[numeric.shape[1]:]:
            ax.set_visible(False)
        return self._save(fig, "eda_distributions.png")

    def _plot_boxplots(self, df: pd.DataFrame) -> str:
        numeric = self._numeric(df)
        long = numeric.assign(**{self.category_col: df[self.category_col]}).melt(
            id_vars=self.category_col, var_name="predictor"
        )
        grid = sns.catplot(
            data=long, x=self.category_col, y="value", col="predictor",
            kind="box", col_wrap=4, sharey=False, height=2.8,
        )
        grid.set_titles("{col_name}")
        return self._save(grid.figure, "eda_boxplots.png")

    def _plot_correlation_heatmap(self, corr: pd.DataFrame) -> str:
        fig, ax = plt.subplots(figsize=(9, 7))
        sns.heatmap(corr, annot=True, fmt=".2f", cmap="RdBu_r", center=0, square=True, ax=ax)
        ax.set_title("Correlation matrix (predictors)")
        return self._save(fig, "eda_correlation_matrix.png")

    def run(self, df: pd.DataFrame) -> EdaSummary:
        stats = self.summary_statistics(df)
        counts = self.class_distribution(df)
        nonzero = counts["count"][counts["count"] > 0]
        ratio = float(nonzero.max() / nonzero.min()) if len(nonzero) else float("nan")
        corr = self.correlation_matrix(df)

        summary = EdaSummary(
            statistics=stats,
            class_counts=counts,
            imbalance_ratio=ratio,
            correlations=corr,
            top_correlations=self.top_correlations(corr, self.top_k),
            target_correlations=self.target_correlations(df),
        )
        self.logger.info(f"Class counts: {counts['count'].to_dict()} (imbalance ratio {ratio:.2f})")

        if self.plot:
            summary.figures["class_balance"] = self._plot_class_balance(counts)
            summary.figures["distributions"] = self._plot_distributions(df)
            summary.figures["boxplots"] = self._plot_boxplots(df)
            summary.figures["correlation_matrix"] = self._plot_correlation_heatmap(corr)
        return summary
