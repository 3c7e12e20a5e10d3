import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .tuning_result import TuningResult
from .utils.logger import get_logger


class TuningPlotter:
    """Plot the cross-validated metric over each trainer's hyperparameter grid."""

    def __init__(self, output_dir: str = "artifacts", verbose: bool = True):
        self.output_dir = output_dir
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)

    @staticmethod
    def _log_axis(values) -> bool:
        values = np.asarray(values, dtype=float)
        return bool(values.min() > 0 and values.max() / values.min() >= 100)

    def plot(self, result: TuningResult, label: str = "") -> str:
        summary = result.summarize()
        params = result.param_names
        x = params[0]
        hue = params[1] if len(params) > 1 else None
        col = params[2] if len(params) > 2 else None

        grid = sns.relplot(
            data=summary, x=x, y="mean", hue=hue, col=col, kind="line", marker="o",
            palette="viridis" if hue else None, height=3.5, aspect=1.2,
            facet_kws={"sharey": True},
        )
        if hue is None and col is None:
            ax = grid.ax
            ax.fill_between(
                summary[x], summary["mean"] - summary["std_err"], summary["mean"] + summary["std_err"],
                alpha=0.2,
            )
        if self._log_axis(summary[x]):
            grid.set(xscale="log")
        grid.set_axis_labels(x, f"CV {result.metric} (mean)")
        grid.figure.suptitle(f"Grid search: {label or result.model}", y=1.02)

        os.makedirs(self.output_dir, exist_ok=True)
        path = os.path.join(self.output_dir, f"tuning_{result.model}.png")
        grid.figure.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(grid.figure)

        if self.verbose:
            self.logger.info(f"Saved grid-search plot: {path}")
        return path
