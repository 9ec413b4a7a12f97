import json

import numpy as np
import pytest

from fertility.config import Config
from fertility.errors import DataIntegrityError, DegenerateMetricWarning
from fertility.pipeline import PipelineRunner

METHODS = ["Imbalanced", "K-fold CV", "Down-sampling", "Up-sampling", "SMOTE", "Balanced sampling"]


def _config(data_path, tmp_path, figures=False, extra=()) -> Config:
    experiments = [
        {"name": "Imbalanced", "strategy": "none", "model": "forest", "seed": 11},
        {"name": "K-fold CV", "strategy": "kfold", "model": "forest", "seed": 12},
        {"name": "Down-sampling", "strategy": "downsample", "model": "forest", "seed": 13},
        {"name": "Up-sampling", "strategy": "upsample", "model": "forest", "seed": 14},
        {"name": "SMOTE", "strategy": "smote", "model": "forest", "seed": 15},
        {"name": "Balanced sampling", "strategy": "balanced_bootstrap", "model": "forest", "seed": 16},
    ] + list(extra)
    return Config.from_dict(
        {
            "data": {"path": str(data_path), "has_header": False},
            "model": {"max_features": 3, "n_estimators": 15, "n_jobs": 1},
            "resampling": {"k_neighbors": 8},
            "validation": {"train_fraction": 0.67, "random_state": 1, "n_splits": 10},
            "tuning": {"enabled": True, "sampler": "grid", "n_estimators": 5},
            "experiments": experiments,
            "output": {
                "table_path": str(tmp_path / "out" / "comparison.csv"),
                "metrics_path": str(tmp_path / "out" / "metrics.json"),
                "figures_dir": str(tmp_path / "figures") if figures else None,
            },
        }
    )


def test_pipeline_reports_every_method_and_marks_failed_smote(fertility_csv, tmp_path):
    runner = PipelineRunner(_config(fertility_csv, tmp_path))
    table = runner.run()

    assert list(table.index) == METHODS

    # 8 abnormal training records cannot feed SMOTE with k=8
    assert np.isnan(table.loc["SMOTE", "Accuracy"])
    assert "MISSING: InsufficientNeighborsError" in table.loc["SMOTE", "Notes"]

    for method in METHODS:
        if method == "SMOTE":
            continue
        assert 0.0 <= table.loc[method, "Accuracy"] <= 1.0

    assert "pooled out-of-fold" in table.loc["K-fold CV", "Notes"]
    assert 1 <= runner.shared_max_features <= 9

    assert (tmp_path / "out" / "comparison.csv").exists()
    payload = json.loads((tmp_path / "out" / "metrics.json").read_text())
    assert set(payload) == set(METHODS)
    assert "error" in payload["SMOTE"]
    assert payload["Down-sampling"]["confusion"]["tp"] + payload["Down-sampling"]["confusion"]["fn"] == 4


def test_pipeline_is_reproducible(fertility_csv, tmp_path):
    first = PipelineRunner(_config(fertility_csv, tmp_path)).run()
    second = PipelineRunner(_config(fertility_csv, tmp_path)).run()
    assert first.equals(second)


def test_split_failure_does_not_stop_pipeline(tmp_path, make_fertility):
    df = make_fertility(n_normal=99, n_abnormal=1)
    path = tmp_path / "one_abnormal.txt"
    raw = df.copy()
    raw["diagnosis"] = raw["diagnosis"].map({"normal": "N", "abnormal": "O"})
    raw.astype({col: float for col in raw.columns if col != "diagnosis"}).to_csv(
        path, header=False, index=False
    )

    table = PipelineRunner(_config(path, tmp_path)).run()

    assert list(table.index) == METHODS
    assert table["Notes"].str.startswith("MISSING: InsufficientClassSizeError").all()


def test_data_integrity_error_aborts_pipeline(tmp_path):
    path = tmp_path / "broken.txt"
    path.write_text("1,2,3\n4,5,6\n")
    with pytest.raises(DataIntegrityError):
        PipelineRunner(_config(path, tmp_path)).run()


def test_pipeline_writes_figures_and_tree_plot(fertility_csv, tmp_path):
    tree_exp = {"name": "Decision tree", "strategy": "none", "model": "tree", "seed": 10}
    table = PipelineRunner(_config(fertility_csv, tmp_path, figures=True, extra=[tree_exp])).run()

    figures = tmp_path / "figures"
    assert (figures / "class_distribution.png").exists()
    assert (figures / "comparison.png").exists()
    assert (figures / "tree_decision_tree.png").exists()
    assert (figures / "confusion_matrix_imbalanced.png").exists()
    assert list(table.index)[-1] == "Decision tree"


def test_runner_accepts_yaml_path(fertility_csv, tmp_path):
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(
        "data:\n"
        f"  path: {fertility_csv}\n"
        "model:\n  n_estimators: 5\n  n_jobs: 1\n"
        "experiments:\n"
        "  - {name: Imbalanced, strategy: none, seed: 1}\n"
    )
    table = PipelineRunner(str(cfg_path)).run()
    assert list(table.index) == ["Imbalanced"]


def test_unresampled_forest_reports_zero_sensitivity_with_note(tmp_path, raw_fertility):
    # constant predictors leave every tree a single majority-class leaf
    raw = raw_fertility.copy()
    for col, value in zip(range(9), [-0.33, 0.7, 1, 0, 1, 0, 0.8, -1, 0.5]):
        raw[col] = value
    path = tmp_path / "uninformative.txt"
    raw.to_csv(path, header=False, index=False)

    cfg = _config(path, tmp_path)
    cfg.experiments = cfg.experiments[:1]
    with pytest.warns(DegenerateMetricWarning, match="sensitivity is 0"):
        table = PipelineRunner(cfg).run()

    row = table.loc["Imbalanced"]
    assert row["Sensitivity"] == 0.0
    assert row["Specificity"] == 1.0
    assert row["Accuracy"] == pytest.approx(29 / 33)
    assert "sensitivity is 0" in row["Notes"]


def test_kfold_balances_training_folds_when_configured(fertility_csv, tmp_path):
    cfg = _config(fertility_csv, tmp_path)
    cfg.validation["balance_strategy"] = "downsample"
    cfg.experiments = [exp for exp in cfg.experiments if exp["strategy"] == "kfold"]

    table = PipelineRunner(cfg).run()

    notes = table.loc["K-fold CV", "Notes"]
    assert "pooled out-of-fold" in notes
    assert "training folds balanced with 'downsample'" in notes
