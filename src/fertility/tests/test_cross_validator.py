from dataclasses import replace

import pandas as pd
import pytest

from fertility.balancer import Balancer
from fertility.cross_validator import POOLED_NOTE, CrossValidator
from fertility.data_loader import LABELS, split_features_target
from fertility.errors import InsufficientClassSizeError
from fertility.evaluator import Evaluator
from fertility.hyper_tuner import HyperTuner
from fertility.model_trainer import Hyperparameters

SMALL = Hyperparameters(max_features=3, n_estimators=10)


def test_cross_val_predict_covers_every_record_once(fertility_df):
    X, y = split_features_target(fertility_df)
    preds = CrossValidator(n_splits=10, random_state=0, n_jobs=1).cross_val_predict(X, y, SMALL)

    assert preds.index.equals(y.index)
    assert preds.notna().all()
    assert set(preds) <= set(LABELS)


def test_run_scores_pooled_predictions(fertility_df):
    X, y = split_features_target(fertility_df)
    result = CrossValidator(n_splits=10, random_state=0, n_jobs=1).run(
        X, y, SMALL, evaluator=Evaluator(verbose=False)
    )

    assert result.max_features == 3
    assert result.metrics.method == "K-fold CV"
    assert result.metrics.confusion.total == 100
    assert POOLED_NOTE in result.metrics.notes
    assert result.scores == {}


def test_cross_validation_is_deterministic(fertility_df):
    X, y = split_features_target(fertility_df)
    a = CrossValidator(n_splits=5, random_state=2, n_jobs=1).cross_val_predict(X, y, SMALL)
    b = CrossValidator(n_splits=5, random_state=2, n_jobs=1).cross_val_predict(X, y, SMALL)
    pd.testing.assert_series_equal(a, b)


def test_too_many_folds_for_minority_class(fertility_df):
    X, y = split_features_target(fertility_df)
    with pytest.raises(InsufficientClassSizeError):
        CrossValidator(n_splits=15).cross_val_predict(X, y, SMALL)


def test_balancing_inside_training_folds(fertility_df):
    X, y = split_features_target(fertility_df)
    validator = CrossValidator(
        n_splits=5, random_state=0, n_jobs=1, balancer=Balancer(strategy="downsample")
    )
    preds = validator.cross_val_predict(X, y, SMALL)
    assert len(preds) == len(y)
    assert preds.notna().all()


def test_run_notes_balancing_inside_training_folds(fertility_df):
    X, y = split_features_target(fertility_df)
    validator = CrossValidator(
        n_splits=5, random_state=0, n_jobs=1, balancer=Balancer(strategy="upsample")
    )
    result = validator.run(X, y, SMALL, evaluator=Evaluator(verbose=False))

    assert POOLED_NOTE in result.metrics.notes
    assert "training folds balanced with 'upsample'" in result.metrics.notes


def test_tuned_max_features_is_scored_with_full_forest(fertility_df):
    X, y = split_features_target(fertility_df)
    hp = Hyperparameters(max_features=3, n_estimators=7)
    validator = CrossValidator(n_splits=3, random_state=4, n_jobs=1)
    tuner = HyperTuner(sampler="grid", random_state=4, n_estimators=3)

    result = validator.run(X, y, hp, tuner=tuner, evaluator=Evaluator(verbose=False))

    expected = validator.cross_val_predict(X, y, replace(hp, max_features=result.max_features))
    pd.testing.assert_series_equal(result.predictions, expected)
    assert result.scores == tuner.scores_
