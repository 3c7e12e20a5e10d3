from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import yaml

DEFAULT_PREDICTORS: Tuple[str, ...] = (
    "fixed_acidity",
    "volatile_acidity",
    "citric_acid",
    "residual_sugar",
    "chlorides",
    "free_sulfur_dioxide",
    "total_sulfur_dioxide",
    "density",
    "ph",
    "sulphates",
    "alcohol",
)

DEFAULT_MODELS: Tuple[str, ...] = (
    "elastic_net",
    "random_forest",
    "decision_tree",
    "svm_linear",
    "boosted_trees",
)


@dataclass(frozen=True)
class RunConfig:
    """Run configuration loaded from YAML and passed by value to every component."""
    data_path: str = "data/winequality-red.csv"
    sep: str = ";"
    predictors: Tuple[str, ...] = DEFAULT_PREDICTORS
    target_col: str = "quality"
    category_col: str = "quality_category"
    sample_size: Optional[int] = None
    drop_duplicates: bool = False

    seed: int = 42
    train_fraction: float = 0.75
    n_folds: int = 5

    scale_columns: Tuple[str, ...] = (
        "residual_sugar",
        "chlorides",
        "free_sulfur_dioxide",
        "total_sulfur_dioxide",
        "sulphates",
    )
    interaction: Tuple[str, str] = ("density", "alcohol")

    models: Tuple[str, ...] = DEFAULT_MODELS
    strict_convergence: bool = False
    use_cache: bool = True
    n_jobs: int = 1
    max_iter: int = 1000

    output_dir: str = "artifacts"
    figures_dir: str = "artifacts/figures"
    cache_dir: str = "artifacts/tuning"
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not 0.0 < self.train_fraction < 1.0:
            raise ValueError(f"train_fraction must be in (0, 1), got {self.train_fraction}")
        if self.n_folds < 2:
            raise ValueError(f"n_folds must be >= 2, got {self.n_folds}")
        if len(self.interaction) != 2:
            raise ValueError("interaction must name exactly two columns")

    @property
    def model_path(self) -> str:
        return f"{self.output_dir}/best_model.joblib"

    @property
    def metrics_path(self) -> str:
        return f"{self.output_dir}/test_metrics.json"

    @property
    def report_path(self) -> str:
        return f"{self.output_dir}/report.md"

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "RunConfig":
        """Flatten the ``data/split/recipe/tuning/output`` sections into a RunConfig."""
        cfg = cfg or {}
        data = cfg.get("data", {}) or {}
        split = cfg.get("split", {}) or {}
        recipe = cfg.get("recipe", {}) or {}
        tuning = cfg.get("tuning", {}) or {}
        output = cfg.get("output", {}) or {}

        kwargs: Dict[str, Any] = {}
        for key in ("sep", "target_col", "category_col", "sample_size", "drop_duplicates"):
            if key in data:
                kwargs[key] = data[key]
        if "path" in data:
            kwargs["data_path"] = data["path"]
        if "predictors" in data:
            kwargs["predictors"] = tuple(data["predictors"])

        for key in ("seed", "train_fraction", "n_folds"):
            if key in split:
                kwargs[key] = split[key]

        if "scale_columns" in recipe:
            kwargs["scale_columns"] = tuple(recipe["scale_columns"])
        if "interaction" in recipe:
            kwargs["interaction"] = tuple(recipe["interaction"])

        for key in ("strict_convergence", "use_cache", "n_jobs", "max_iter"):
            if key in tuning:
                kwargs[key] = tuning[key]
        if "models" in tuning:
            kwargs["models"] = tuple(tuning["models"])

        for key in ("output_dir", "figures_dir", "cache_dir"):
            if key in output:
                kwargs[key] = output[key]

        known = {"data", "split", "recipe", "tuning", "output"}
        kwargs["extra"] = {k: v for k, v in cfg.items() if k not in known}
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str) -> "RunConfig":
        with open(path, "r") as f:
            cfg = yaml.safe_load(f)
        return cls.from_dict(cfg)
