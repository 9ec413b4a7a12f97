from dataclasses import dataclass, field, replace
from typing import Dict, Optional

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold

from .balancer import Balancer
from .errors import InsufficientClassSizeError, ParameterValidationError
from .evaluator import Evaluator, MetricRow
from .model_trainer import Hyperparameters, ModelTrainer
from .utils.logger import get_logger

POOLED_NOTE = "pooled out-of-fold predictions over the full dataset (not the common test split)"


@dataclass(frozen=True, eq=False)
class CrossValidationResult:
    metrics: MetricRow
    max_features: int
    predictions: pd.Series
    scores: Dict[int, float] = field(default_factory=dict)


class CrossValidator:
    """
    Stratified k-fold evaluation of a random forest.

    Every record is predicted exactly once, by a forest that never saw it;
    the pooled out-of-fold predictions are scored as one confusion matrix.
    Balancing, when configured, touches the training folds only.
    """

    def __init__(
        self,
        n_splits: int = 10,
        random_state: int = 42,
        n_jobs: int = -1,
        balancer: Optional[Balancer] = None,
    ):
        self.n_splits = n_splits
        self.random_state = random_state
        self.n_jobs = n_jobs
        self.balancer = balancer
        self.logger = get_logger(self.__class__.__name__)

    def _check_folds(self, y: pd.Series) -> None:
        if self.n_splits < 2:
            raise ParameterValidationError(f"n_splits must be at least 2, got {self.n_splits}")
        counts = y.value_counts()
        too_small = counts[counts < self.n_splits]
        if not too_small.empty:
            raise InsufficientClassSizeError(
                f"Cannot build {self.n_splits} stratified folds: {too_small.to_dict()}"
            )

    def cross_val_predict(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        hyperparameters: Hyperparameters,
    ) -> pd.Series:
        """Out-of-fold predicted label for every record, aligned to y."""
        self._check_folds(y)

        oof = np.empty(len(y), dtype=object)
        skf = StratifiedKFold(
            n_splits=self.n_splits, shuffle=True, random_state=self.random_state
        )

        for fold, (train_idx, val_idx) in enumerate(skf.split(X, y), start=1):
            X_train, y_train = X.iloc[train_idx], y.iloc[train_idx]

            if self.balancer is not None:
                X_train, y_train = self._balance_fold(X_train, y_train, fold)

            model = ModelTrainer(
                kind="forest",
                hyperparameters=hyperparameters,
                random_state=self.random_state + fold,
                n_jobs=self.n_jobs,
            ).fit(X_train, y_train)

            oof[val_idx] = Evaluator(verbose=False).predict(model, X.iloc[val_idx])
            self.logger.debug(f"Fold {fold}/{self.n_splits} done (m={hyperparameters.max_features})")

        return pd.Series(oof, index=y.index, name=y.name)

    def _balance_fold(self, X_train: pd.DataFrame, y_train: pd.Series, fold: int):
        fold_balancer = Balancer(
            strategy=self.balancer.strategy,
            random_state=self.random_state + fold,
            k_neighbors=self.balancer.k_neighbors,
            perc_over=self.balancer.perc_over,
            perc_under=self.balancer.perc_under,
        )
        return fold_balancer.balance(X_train, y_train)

    def run(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        hyperparameters: Hyperparameters,
        method: str = "K-fold CV",
        tuner=None,
        evaluator: Optional[Evaluator] = None,
    ) -> CrossValidationResult:
        """Score pooled out-of-fold predictions, optionally tuning max_features first."""
        evaluator = evaluator or Evaluator()
        self._check_folds(y)

        if tuner is not None:
            best_m = tuner.tune(X, y, self, hyperparameters)
            scores = dict(tuner.scores_)
            search_trees = getattr(tuner, "n_estimators", None)
            if search_trees is None or search_trees == hyperparameters.n_estimators:
                predictions = tuner.predictions_[best_m]
            else:
                # the search ran smaller forests; score the chosen m at full size
                predictions = self.cross_val_predict(
                    X, y, replace(hyperparameters, max_features=best_m)
                )
        else:
            best_m = hyperparameters.max_features
            predictions = self.cross_val_predict(X, y, hyperparameters)
            scores = {}

        row = evaluator.metrics(y, predictions, method)
        notes = row.notes + (POOLED_NOTE,)
        if self.balancer is not None:
            notes += (f"training folds balanced with '{self.balancer.strategy}'",)
        row = replace(row, notes=notes)
        self.logger.info(
            f"{self.n_splits}-fold CV with max_features={best_m}: accuracy={row.accuracy:.4f}"
        )
        return CrossValidationResult(
            metrics=row, max_features=best_m, predictions=predictions, scores=scores
        )
