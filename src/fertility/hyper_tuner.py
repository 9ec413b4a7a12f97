import logging
from dataclasses import replace
from typing import Any, Dict, Optional

import optuna
import pandas as pd
from sklearn.metrics import accuracy_score

from .model_trainer import Hyperparameters
from .utils.logger import get_logger

SAMPLERS = ("grid", "random", "tpe")


class HyperTuner:
    """Optuna search over max_features (mtry) scored by cross-validated accuracy."""

    def __init__(
        self,
        sampler: str = "grid",
        n_trials: Optional[int] = None,
        random_state: int = 42,
        n_estimators: Optional[int] = None,
    ):
        if sampler not in SAMPLERS:
            raise ValueError(f"Unknown sampler '{sampler}', expected one of {SAMPLERS}")
        self.sampler = sampler
        self.n_trials = n_trials
        self.random_state = random_state
        # forest size used while searching; None keeps the caller's
        self.n_estimators = n_estimators
        self.logger = get_logger(self.__class__.__name__)
        self.scores_: Dict[int, float] = {}
        self.predictions_: Dict[int, pd.Series] = {}
        self.best_max_features_: Optional[int] = None
        self.best_value_: Optional[float] = None

    def _make_sampler(self, n_features: int) -> optuna.samplers.BaseSampler:
        if self.sampler == "grid":
            return optuna.samplers.GridSampler(
                {"max_features": list(range(1, n_features + 1))}, seed=self.random_state
            )
        if self.sampler == "random":
            return optuna.samplers.RandomSampler(seed=self.random_state)
        return optuna.samplers.TPESampler(seed=self.random_state)

    def tune(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        validator: Any,
        hyperparameters: Hyperparameters,
    ) -> int:
        """
        Run the search and return the best max_features.
        Each candidate is scored by validator.cross_val_predict; equal
        accuracies resolve to the smallest max_features.
        """
        n_features = X.shape[1]
        n_trials = n_features if self.sampler == "grid" else (self.n_trials or n_features)
        self.scores_ = {}
        self.predictions_ = {}
        search = hyperparameters
        if self.n_estimators is not None:
            search = replace(hyperparameters, n_estimators=self.n_estimators)

        self.logger.info(
            f"Starting Optuna tuning of max_features ({self.sampler} sampler, {n_trials} trials, "
            f"{search.n_estimators} trees, "
            f"{validator.n_splits}-fold CV)"
        )

        optuna.logging.set_verbosity(optuna.logging.WARNING)
        study = optuna.create_study(
            direction="maximize", sampler=self._make_sampler(n_features)
        )

        previous_level = validator.logger.level
        # reduce log noise during tuning
        validator.logger.setLevel(logging.WARNING)

        def objective(trial: optuna.Trial) -> float:
            m = trial.suggest_int("max_features", 1, n_features)
            if m not in self.scores_:
                params = replace(search, max_features=m)
                predictions = validator.cross_val_predict(X, y, params)
                self.predictions_[m] = predictions
                self.scores_[m] = float(accuracy_score(y, predictions))
                self.logger.info(f"max_features={m}: CV accuracy={self.scores_[m]:.4f}")
            return self.scores_[m]

        try:
            study.optimize(objective, n_trials=n_trials)
        finally:
            validator.logger.setLevel(previous_level)

        self.best_value_ = max(self.scores_.values())
        self.best_max_features_ = min(
            m for m, score in self.scores_.items() if score == self.best_value_
        )

        self.logger.info(f"Best CV accuracy: {self.best_value_:.4f}")
        self.logger.info(f"Best max_features: {self.best_max_features_}")

        return self.best_max_features_
