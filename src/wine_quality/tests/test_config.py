from pathlib import Path

import pytest

from wine_quality.config import DEFAULT_MODELS, RunConfig

DEFAULT_YAML = Path(__file__).resolve().parents[3] / "config" / "default.yaml"


def test_default_yaml_loads():
    cfg = RunConfig.from_yaml(str(DEFAULT_YAML))
    assert cfg.sep == ";"
    assert cfg.models == DEFAULT_MODELS
    assert cfg.interaction == ("density", "alcohol")
    assert 0 < cfg.train_fraction < 1


def test_sections_are_flattened(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "data:\n  path: wine.csv\n"
        "split:\n  seed: 7\n  n_folds: 3\n  train_fraction: 0.8\n"
        "tuning:\n  models: [decision_tree]\n  use_cache: false\n"
        "output:\n  output_dir: out\n"
        "notes: scratch run\n"
    )

    cfg = RunConfig.from_yaml(str(path))

    assert cfg.data_path == "wine.csv"
    assert (cfg.seed, cfg.n_folds, cfg.train_fraction) == (7, 3, 0.8)
    assert cfg.models == ("decision_tree",)
    assert cfg.use_cache is False
    assert cfg.model_path == "out/best_model.joblib"
    assert cfg.extra == {"notes": "scratch run"}


def test_config_is_immutable():
    cfg = RunConfig()
    with pytest.raises(Exception):
        cfg.seed = 1


@pytest.mark.parametrize("kwargs", [{"train_fraction": 1.5}, {"n_folds": 1}, {"interaction": ("a",)}])
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        RunConfig(**kwargs)
