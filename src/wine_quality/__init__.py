"""
Wine Quality — Model Comparison Report

This package loads the semicolon-delimited wine-quality dataset, derives an
ordered Low/Medium/High target, explores it, and compares five classifier
families by grid-search cross-validation before testing the best one once.

Modules:
    config          — Load YAML run configuration.
    data_loader     — Read, validate and label the delimited data.
    explorer        — Descriptive statistics, correlations and EDA figures.
    splitter        — Stratified train/test split and CV folds.
    recipe          — Fit-once/apply-many feature steps.
    model_specs     — Classifier families and their hyperparameter grids.
    model_trainer   — Leakage-safe per-fold fitting and scoring.
    hyper_tuner     — Grid search driven by Optuna's GridSampler.
    tuning_result   — Per-fold metric tables, aggregation and persistence.
    model_selector  — Best-model selection, refit and test evaluation.
    evaluator       — Test metrics, confusion matrix, ROC curves, importance.
    tuning_plotter  — Grid-search metric plots.
    report          — Markdown report rendering.
    pipeline        — Orchestrates all components.
    utils.logger    — Unified timestamped console logger.
"""

from .config import RunConfig
from .data_loader import DataLoader, derive_quality_category
from .exceptions import DataFormatError, FitError, SchemaMismatchError
from .explorer import Explorer
from .splitter import DataSplit, Splitter
from .recipe import Recipe, build_recipe
from .model_specs import MODEL_SPECS, ModelSpec
from .model_trainer import ModelTrainer
from .hyper_tuner import HyperTuner
from .tuning_result import TuningResult
from .evaluator import Evaluator
from .model_selector import ModelSelector
from .report import ReportWriter
from .pipeline import PipelineRunner

__all__ = [
    "RunConfig",
    "DataLoader",
    "derive_quality_category",
    "DataFormatError",
    "FitError",
    "SchemaMismatchError",
    "Explorer",
    "DataSplit",
    "Splitter",
    "Recipe",
    "build_recipe",
    "MODEL_SPECS",
    "ModelSpec",
    "ModelTrainer",
    "HyperTuner",
    "TuningResult",
    "Evaluator",
    "ModelSelector",
    "ReportWriter",
    "PipelineRunner",
]
