import json
import os

import pandas as pd
import pytest

from wine_quality.config import RunConfig
from wine_quality.exceptions import DataFormatError
from wine_quality.pipeline import PipelineRunner
from wine_quality.splitter import Splitter
from wine_quality.tuning_result import TuningResult


def _config(tmp_path, data_path, **overrides):
    out = tmp_path / "artifacts"
    kwargs = dict(
        data_path=data_path,
        n_folds=3,
        models=("decision_tree",),
        output_dir=str(out),
        figures_dir=str(out / "figures"),
        cache_dir=str(out / "tuning"),
    )
    kwargs.update(overrides)
    return RunConfig(**kwargs)


def test_pipeline_writes_report_and_artifacts(tmp_path, wine_frame, write_raw_csv):
    cfg = _config(tmp_path, write_raw_csv(wine_frame))

    final = PipelineRunner(cfg).run()

    assert final.selection.spec.name == "decision_tree"
    for path in (cfg.report_path, cfg.metrics_path, cfg.model_path):
        assert os.path.exists(path)
    cache = os.path.join(cfg.cache_dir, "decision_tree_tuning.json")
    assert len(TuningResult.load(cache).summarize()) == 10

    with open(cfg.metrics_path) as f:
        assert json.load(f)["ROC_AUC"] == pytest.approx(final.metrics["ROC_AUC"])

    report = open(cfg.report_path).read()
    assert "## Exploratory analysis" in report
    assert "### Decision Tree" in report
    assert "## Test-set performance" in report
    assert "confusion_matrix.png" in report


def test_pipeline_reuses_cached_tuning(tmp_path, wine_frame, write_raw_csv):
    cfg = _config(tmp_path, write_raw_csv(wine_frame))
    runner = PipelineRunner(cfg)
    first = runner.run()

    cache = os.path.join(cfg.cache_dir, "decision_tree_tuning.json")
    cached = TuningResult.load(cache)
    # make the cached winner unmistakable
    table = cached.table.copy()
    table["metric"] = 0.5
    table.loc[table["grid_id"] == 9, "metric"] = 0.99
    TuningResult(cached.model, cached.param_names, table, context=cached.context).save(cache)

    second = runner.run()

    assert second.selection.cv_mean == pytest.approx(0.99)
    assert second.selection.params == cached.summarize().loc[9, cached.param_names].to_dict()
    assert first.selection.spec.name == second.selection.spec.name


def test_pipeline_aborts_on_bad_schema(tmp_path, wine_frame):
    path = tmp_path / "bad.csv"
    wine_frame.drop(columns=["quality_category"]).to_csv(path, sep=";", index=False)
    cfg = _config(tmp_path, str(path))

    with pytest.raises(DataFormatError, match="quality"):
        PipelineRunner(cfg).run()


def test_pipeline_reruns_tuning_when_cache_is_stale(tmp_path, wine_frame, write_raw_csv):
    cfg = _config(tmp_path, write_raw_csv(wine_frame))
    PipelineRunner(cfg).run()

    cache = os.path.join(cfg.cache_dir, "decision_tree_tuning.json")
    cached = TuningResult.load(cache)
    table = cached.table.copy()
    table["metric"] = 0.99
    TuningResult(cached.model, cached.param_names, table, context=cached.context).save(cache)

    final = PipelineRunner(_config(tmp_path, cfg.data_path, seed=7)).run()

    assert final.selection.cv_mean != pytest.approx(0.99)
    assert TuningResult.load(cache).context["seed"] == 7


def test_cache_context_tracks_seed_and_data(tmp_path, wine_frame, make_wine_frame, write_raw_csv):
    cfg = _config(tmp_path, write_raw_csv(wine_frame))
    runner = PipelineRunner(cfg)
    splitter = Splitter("quality_category", n_folds=3, random_state=cfg.seed)

    first = runner.cache_context(splitter.split(wine_frame))
    again = runner.cache_context(splitter.split(wine_frame))
    other = runner.cache_context(splitter.split(make_wine_frame(seed=9)))

    assert first == again
    assert (first["seed"], first["n_folds"]) == (cfg.seed, 3)
    assert first["train_digest"] != other["train_digest"]
