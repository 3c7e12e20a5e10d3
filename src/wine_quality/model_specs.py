"""
Classifier-family descriptors: one ``ModelSpec`` per family pairs an estimator
builder with its regular hyperparameter grid. ``ModelTrainer`` is generic over them.
"""

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Sequence

import numpy as np
from lightgbm import LGBMClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

GridPoint = Dict[str, Any]


def regular_grid(**axes: Sequence[Any]) -> List[GridPoint]:
    """Cartesian product of the axes, first axis varying slowest."""
    names = list(axes)
    return [dict(zip(names, combo)) for combo in itertools.product(*axes.values())]


def linear_levels(low: float, high: float, levels: int) -> List[float]:
    return [float(v) for v in np.linspace(low, high, levels)]


def log10_levels(low: float, high: float, levels: int) -> List[float]:
    return [float(v) for v in np.logspace(np.log10(low), np.log10(high), levels)]


def log2_levels(low: float, high: float, levels: int) -> List[float]:
    return [float(v) for v in np.logspace(np.log2(low), np.log2(high), levels, base=2)]


def int_levels(low: int, high: int, levels: int) -> List[int]:
    return [int(v) for v in np.unique(np.round(np.linspace(low, high, levels)).astype(int))]


@dataclass(frozen=True)
class ModelSpec:
    """``build(params, random_state, n_jobs, max_iter)`` returns an unfitted classifier."""
    name: str
    label: str
    build: Callable[..., Any]
    grid: Callable[[], List[GridPoint]]

    @property
    def param_names(self) -> List[str]:
        grid = self.grid()
        return list(grid[0]) if grid else []


def _elastic_net(params: GridPoint, random_state: int, n_jobs: int = 1, max_iter: int = 1000):
    # C multiplies the summed log-loss, so penalty acts like a glmnet lambda of penalty / n_train;
    # the grid is weaker than its raw values suggest
    return LogisticRegression(
        penalty="elasticnet",
        solver="saga",
        C=1.0 / params["penalty"],
        l1_ratio=params["mixture"],
        max_iter=max_iter,
        random_state=random_state,
    )


def _random_forest(params: GridPoint, random_state: int, n_jobs: int = 1, max_iter: int = 1000):
    return RandomForestClassifier(
        max_features=params["mtry"],
        n_estimators=params["trees"],
        min_samples_leaf=params["min_n"],
        random_state=random_state,
        n_jobs=n_jobs,
    )


def _decision_tree(params: GridPoint, random_state: int, n_jobs: int = 1, max_iter: int = 1000):
    return DecisionTreeClassifier(ccp_alpha=params["cost_complexity"], random_state=random_state)


def _svm_linear(params: GridPoint, random_state: int, n_jobs: int = 1, max_iter: int = 1000):
    return SVC(kernel="linear", C=params["cost"], probability=True, random_state=random_state)


def _boosted_trees(params: GridPoint, random_state: int, n_jobs: int = 1, max_iter: int = 1000):
    return LGBMClassifier(
        n_estimators=params["trees"],
        random_state=random_state,
        n_jobs=n_jobs,
        verbosity=-1,
    )


MODEL_SPECS: Dict[str, ModelSpec] = {
    "elastic_net": ModelSpec(
        name="elastic_net",
        label="Elastic Net",
        build=_elastic_net,
        grid=lambda: regular_grid(
            penalty=log10_levels(1e-10, 1.0, 10),
            mixture=linear_levels(0.0, 1.0, 10),
        ),
    ),
    "random_forest": ModelSpec(
        name="random_forest",
        label="Random Forest",
        build=_random_forest,
        grid=lambda: regular_grid(
            mtry=int_levels(1, 11, 5),
            trees=int_levels(1, 2000, 5),
            min_n=int_levels(10, 30, 5),
        ),
    ),
    "decision_tree": ModelSpec(
        name="decision_tree",
        label="Decision Tree",
        build=_decision_tree,
        grid=lambda: regular_grid(cost_complexity=log10_levels(1e-10, 1e-1, 10)),
    ),
    "svm_linear": ModelSpec(
        name="svm_linear",
        label="SVM (linear)",
        build=_svm_linear,
        grid=lambda: regular_grid(cost=log2_levels(2.0 ** -10, 2.0 ** 5, 10)),
    ),
    "boosted_trees": ModelSpec(
        name="boosted_trees",
        label="Boosted Trees",
        build=_boosted_trees,
        grid=lambda: regular_grid(trees=int_levels(1, 2000, 10)),
    ),
}


def get_specs(names: Sequence[str]) -> List[ModelSpec]:
    unknown = [n for n in names if n not in MODEL_SPECS]
    if unknown:
        raise ValueError(f"Unknown model(s): {unknown}; choose from {sorted(MODEL_SPECS)}")
    return [MODEL_SPECS[n] for n in names]
