import hashlib
import os
import warnings
from functools import partial
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from .config import RunConfig
from .data_loader import DataLoader
from .evaluator import Evaluator
from .explorer import Explorer
from .hyper_tuner import HyperTuner
from .model_selector import FinalReport, ModelSelector
from .model_specs import ModelSpec, get_specs
from .model_trainer import ModelTrainer
from .recipe import build_recipe
from .report import ReportWriter
from .splitter import DataSplit, Splitter
from .tuning_plotter import TuningPlotter
from .tuning_result import TuningResult
from .utils.logger import get_logger


class PipelineRunner:
    """End-to-end wine-quality model comparison.

    Steps:
      1. Load the semicolon-delimited data and derive the Low/Medium/High category
      2. Exploratory analysis (statistics, correlations, figures)
      3. Stratified train/test split and stratified CV folds
      4. Grid-search CV of every configured classifier family (cached per trainer)
      5. Select the overall best configuration
      6. Refit on the full training set, evaluate once on the test set
      7. Write the Markdown report"""

    def __init__(self, config: RunConfig):
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        warnings.filterwarnings(
            "ignore",
            message="X does not have valid feature names",
            category=UserWarning,
            module="sklearn",
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "PipelineRunner":
        return cls(RunConfig.from_yaml(config_path))

    def _trainer(self, spec: ModelSpec, split: DataSplit, model_path: Optional[str] = None) -> ModelTrainer:
        cfg = self.config
        return ModelTrainer(
            spec=spec,
            folds=split.folds,
            recipe_factory=partial(build_recipe, cfg.scale_columns, cfg.interaction),
            random_state=cfg.seed,
            n_jobs=cfg.n_jobs,
            max_iter=cfg.max_iter,
            strict_convergence=cfg.strict_convergence,
            model_path=model_path,
        )

    def cache_path(self, spec: ModelSpec) -> str:
        return os.path.join(self.config.cache_dir, f"{spec.name}_tuning.json")

    def cache_context(self, split: DataSplit) -> Dict[str, Any]:
        """Settings a cached tuning table must share with the current run to be reused."""
        cfg = self.config
        digest = hashlib.sha1(pd.util.hash_pandas_object(split.train).to_numpy().tobytes()).hexdigest()
        return {
            "seed": cfg.seed,
            "n_folds": cfg.n_folds,
            "scale_columns": list(cfg.scale_columns),
            "interaction": list(cfg.interaction),
            "train_digest": digest,
        }

    def tune_all(self, split: DataSplit) -> List[TuningResult]:
        """Grid search every configured trainer, reusing cached tuning tables when allowed."""
        cfg = self.config
        X_train = split.train.drop(columns=[cfg.category_col])
        y_train = np.asarray(split.train[cfg.category_col], dtype=object)

        context = self.cache_context(split)

        results = []
        for spec in get_specs(cfg.models):
            path = self.cache_path(spec)
            if cfg.use_cache and os.path.exists(path):
                result = TuningResult.load(path)
                if result.context == context and result.grid() == spec.grid():
                    self.logger.info(f"Loaded cached grid search for {spec.label}: {path}")
                    results.append(result)
                    continue
                self.logger.info(f"Cached {spec.label} result is stale (seed, folds, data or grid changed); re-running")

            result = HyperTuner(self._trainer(spec, split), random_state=cfg.seed).tune(X_train, y_train)
            result.context = context
            result.save(path)
            self.logger.info(f"Saved grid search: {path}")
            results.append(result)
        return results

    def run(self) -> FinalReport:
        self.logger.info("Starting wine-quality model comparison")
        try:
            return self._run()
        except Exception:
            self.logger.exception("Pipeline aborted")
            raise

    def _run(self) -> FinalReport:
        cfg = self.config

        df = DataLoader(
            cfg.data_path,
            sep=cfg.sep,
            predictors=cfg.predictors,
            target_col=cfg.target_col,
            category_col=cfg.category_col,
            sample_size=cfg.sample_size,
            drop_duplicates=cfg.drop_duplicates,
            random_state=cfg.seed,
        ).load()

        eda = Explorer(cfg.category_col, figures_dir=cfg.figures_dir).run(df)

        split = Splitter(
            strata=cfg.category_col,
            train_fraction=cfg.train_fraction,
            n_folds=cfg.n_folds,
            random_state=cfg.seed,
        ).split(df)

        results = self.tune_all(split)

        plotter = TuningPlotter(cfg.figures_dir)
        tuning_plots = {r.model: plotter.plot(r, label=spec.label) for r, spec in zip(results, get_specs(cfg.models))}

        selector = ModelSelector(cfg.category_col, Evaluator(cfg.metrics_path, cfg.figures_dir))
        best_table = selector.best_per_trainer(results)
        self.logger.info(f"Best configuration per trainer:\n{best_table.to_string(index=False)}")

        selection = selector.select(results)
        final = selector.finalize(
            selection,
            self._trainer(selection.spec, split, model_path=cfg.model_path),
            split.train,
            split.test,
        )

        ReportWriter(cfg.report_path).write(
            eda, results, tuning_plots, best_table, final, n_train=len(split.train), n_test=len(split.test)
        )
        self.logger.info("Pipeline finished")
        return final
