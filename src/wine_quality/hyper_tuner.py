from typing import Any, Dict, List, Tuple

import numpy as np
import optuna
import pandas as pd

from .model_trainer import ModelTrainer
from .tuning_result import TuningResult
from .utils.logger import get_logger


class HyperTuner:
    """Exhaustive grid search over a trainer's grid, driven by an Optuna ``GridSampler``."""

    def __init__(self, trainer: ModelTrainer, random_state: int = 42):
        self.trainer = trainer
        self.random_state = random_state
        self.logger = get_logger(self.__class__.__name__)
        self.best_params_: Dict[str, Any] | None = None
        self.best_value_: float | None = None

    @staticmethod
    def _search_space(grid: List[Dict[str, Any]]) -> Dict[str, List[Any]]:
        """Distinct values per axis, in first-seen grid order."""
        space: Dict[str, List[Any]] = {}
        for point in grid:
            for name, value in point.items():
                values = space.setdefault(name, [])
                if value not in values:
                    values.append(value)
        return space

    def tune(self, X_df: pd.DataFrame, y) -> TuningResult:
        """
        Evaluate every grid point on every fold and return the table in grid order.
        Uses ModelTrainer.cross_validate so the recipe is refit per fold.
        """
        spec = self.trainer.spec
        grid = spec.grid()
        space = self._search_space(grid)
        names = list(space)
        grid_ids: Dict[Tuple[Any, ...], int] = {
            tuple(point[n] for n in names): i for i, point in enumerate(grid)
        }
        fold_metrics: Dict[int, List[float]] = {}

        self.logger.info(
            f"Grid search {spec.label}: {len(grid)} grid points x {self.trainer.n_splits}-fold CV"
        )

        optuna.logging.set_verbosity(optuna.logging.ERROR)
        sampler = optuna.samplers.GridSampler(space, seed=self.random_state)
        study = optuna.create_study(direction="maximize", sampler=sampler, study_name=spec.name)

        y = np.asarray(y, dtype=object)

        def objective(trial: optuna.Trial) -> float:
            params = {name: trial.suggest_categorical(name, values) for name, values in space.items()}
            scores = self.trainer.cross_validate(X_df, y, params)
            fold_metrics[grid_ids[tuple(params[n] for n in names)]] = scores

            mean_auc = float(np.mean(scores))
            self.logger.info(f"{spec.name} {params} mean ROC-AUC: {mean_auc:.4f}")
            # a NaN return marks the trial failed; the grid point stays in the table as missing
            return mean_auc

        study.optimize(objective, n_trials=len(grid))

        result = TuningResult.from_fold_metrics(
            spec.name,
            grid,
            [fold_metrics.get(i, [float("nan")] * self.trainer.n_splits) for i in range(len(grid))],
        )

        best = result.rank().iloc[0]
        if pd.notna(best["mean"]):
            self.best_params_ = result.best_params()
            self.best_value_ = float(best["mean"])
            self.logger.info(f"Best CV ROC-AUC ({spec.label}): {self.best_value_:.4f}")
            self.logger.info(f"Best parameters: {self.best_params_}")
        else:
            self.logger.warning(f"{spec.label}: no grid point produced a complete CV score")

        return result
