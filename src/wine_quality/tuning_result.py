import json
import os
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from .exceptions import FitError


class TuningResult:
    """Per-(grid point, fold) metric table of one trainer's grid search.

    ``table`` columns: ``grid_id``, one column per hyperparameter, ``fold`` and
    ``metric`` (NaN where the fit failed).
    """

    def __init__(
        self,
        model: str,
        param_names: Sequence[str],
        table: pd.DataFrame,
        metric: str = "roc_auc",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.model = model
        self.param_names = list(param_names)
        self.metric = metric
        # run settings the table was produced under (seed, folds, data digest)
        self.context = dict(context or {})
        self.table = table.sort_values(["grid_id", "fold"], kind="stable").reset_index(drop=True)

    @classmethod
    def from_fold_metrics(
        cls,
        model: str,
        grid: List[Dict[str, Any]],
        fold_metrics: List[List[float]],
        metric: str = "roc_auc",
    ) -> "TuningResult":
        """``fold_metrics[i][k]`` is the metric of grid point ``i`` on fold ``k``."""
        if len(grid) != len(fold_metrics):
            raise ValueError("grid and fold_metrics must have the same length")
        rows = []
        for grid_id, (point, scores) in enumerate(zip(grid, fold_metrics)):
            for fold, score in enumerate(scores, start=1):
                rows.append({"grid_id": grid_id, **point, "fold": fold, "metric": float(score)})
        param_names = list(grid[0]) if grid else []
        table = pd.DataFrame(rows, columns=["grid_id", *param_names, "fold", "metric"])
        return cls(model, param_names, table, metric)

    @property
    def n_folds(self) -> int:
        return int(self.table["fold"].nunique())

    def grid(self) -> List[Dict[str, Any]]:
        """Grid points in grid order."""
        points = self.table.groupby("grid_id", sort=True)[self.param_names].first()
        return [{k: _to_python(v) for k, v in row.items()} for row in points.to_dict(orient="records")]

    def summarize(self) -> pd.DataFrame:
        """One row per grid point: params, ``mean``, ``std_err`` and ``n`` (non-missing folds).

        A grid point with any missing fold metric has a missing ``mean``.
        """
        grouped = self.table.groupby("grid_id", sort=True)
        metric = grouped["metric"]
        summary = grouped[self.param_names].first() if self.param_names else pd.DataFrame(index=metric.size().index)
        summary["mean"] = metric.mean()
        summary["std_err"] = metric.std(ddof=1) / np.sqrt(metric.size())
        summary["n"] = metric.count()
        incomplete = summary["n"] < metric.size()
        summary.loc[incomplete, ["mean", "std_err"]] = np.nan
        summary.insert(0, "model", self.model)
        return summary.reset_index()

    def rank(self) -> pd.DataFrame:
        """Grid points by descending mean; ties keep grid order, missing means last."""
        return self.summarize().sort_values(
            "mean", ascending=False, kind="stable", na_position="last"
        ).reset_index(drop=True)

    def best(self) -> pd.Series:
        ranked = self.rank()
        if ranked.empty or pd.isna(ranked.loc[0, "mean"]):
            raise FitError(f"{self.model}: every grid point failed to fit")
        return ranked.iloc[0]

    def best_params(self) -> Dict[str, Any]:
        best = self.best()
        return {name: _to_python(best[name]) for name in self.param_names}

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        payload = {
            "model": self.model,
            "metric": self.metric,
            "param_names": self.param_names,
            "context": self.context,
            "rows": [
                {k: _to_python(v) for k, v in row.items()}
                for row in self.table.to_dict(orient="records")
            ],
        }
        with open(path, "w") as f:
            json.dump(payload, f, indent=2)

    @classmethod
    def load(cls, path: str) -> "TuningResult":
        with open(path, "r") as f:
            payload = json.load(f)
        columns = ["grid_id", *payload["param_names"], "fold", "metric"]
        table = pd.DataFrame(payload["rows"], columns=columns)
        table["metric"] = table["metric"].astype(float)
        return cls(
            payload["model"],
            payload["param_names"],
            table,
            payload.get("metric", "roc_auc"),
            context=payload.get("context"),
        )


def _to_python(value: Any) -> Any:
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, float) and np.isnan(value):
        return None
    return value
