from dataclasses import dataclass
from typing import Literal

import pandas as pd
from imblearn.ensemble import BalancedRandomForestClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.pipeline import Pipeline
from sklearn.tree import DecisionTreeClassifier

from .errors import InsufficientClassSizeError, ParameterValidationError
from .preprocessor import Preprocessor
from .utils.logger import get_logger

MODEL_KINDS = ("forest", "tree")


@dataclass(frozen=True)
class Hyperparameters:
    """Tree/forest knobs exposed to the operator.

    max_features is the number of candidate predictors drawn at every
    split (mtry); it is ignored by the single tree, which considers all.
    """
    max_features: int = 3
    n_estimators: int = 1000
    min_samples_leaf: int = 1
    min_samples_split: int = 1


@dataclass(frozen=True, eq=False)
class FittedModel:
    kind: str
    pipeline: Pipeline
    # in transformed column order
    feature_names: tuple
    hyperparameters: Hyperparameters
    balanced_bootstrap: bool = False


class ModelTrainer:
    """
    Fits a gini decision tree or a random forest behind the Preprocessor.

    With balanced_bootstrap=True the forest draws, for every tree and with
    replacement, as many records from each class as the minority class
    holds, instead of a plain bootstrap of the training set.
    """

    def __init__(
        self,
        kind: Literal["forest", "tree"] = "forest",
        hyperparameters: Hyperparameters = Hyperparameters(),
        random_state: int = 42,
        balanced_bootstrap: bool = False,
        n_jobs: int = -1,
    ):
        self.kind = kind
        self.hyperparameters = hyperparameters
        self.random_state = random_state
        self.balanced_bootstrap = balanced_bootstrap
        self.n_jobs = n_jobs
        self.logger = get_logger(self.__class__.__name__)

    def _validate(self, X: pd.DataFrame) -> None:
        hp = self.hyperparameters
        n_features = X.shape[1]

        if self.kind not in MODEL_KINDS:
            raise ParameterValidationError(f"Unknown model kind: {self.kind}")
        if self.balanced_bootstrap and self.kind != "forest":
            raise ParameterValidationError("Balanced bootstrap applies to forests only")
        if self.kind == "forest":
            if not 1 <= hp.max_features <= n_features:
                raise ParameterValidationError(
                    f"max_features={hp.max_features} must be in [1, {n_features}]"
                )
            if hp.n_estimators < 1:
                raise ParameterValidationError(
                    f"n_estimators must be positive, got {hp.n_estimators}"
                )
        if hp.min_samples_leaf < 1 or hp.min_samples_split < 1:
            raise ParameterValidationError(
                "min_samples_leaf and min_samples_split must be at least 1"
            )
        if len(X) < hp.min_samples_split:
            raise InsufficientClassSizeError(
                f"Training set has {len(X)} records, fewer than "
                f"min_samples_split={hp.min_samples_split}"
            )

    def _build_estimator(self):
        hp = self.hyperparameters
        # scikit-learn cannot split fewer than two records
        min_split = max(2, hp.min_samples_split)

        if self.kind == "tree":
            return DecisionTreeClassifier(
                criterion="gini",
                min_samples_leaf=hp.min_samples_leaf,
                min_samples_split=min_split,
                random_state=self.random_state,
            )

        if self.balanced_bootstrap:
            return BalancedRandomForestClassifier(
                n_estimators=hp.n_estimators,
                criterion="gini",
                max_features=hp.max_features,
                min_samples_leaf=hp.min_samples_leaf,
                min_samples_split=min_split,
                sampling_strategy="all",
                replacement=True,
                bootstrap=False,
                random_state=self.random_state,
                n_jobs=self.n_jobs,
            )

        return RandomForestClassifier(
            n_estimators=hp.n_estimators,
            criterion="gini",
            max_features=hp.max_features,
            min_samples_leaf=hp.min_samples_leaf,
            min_samples_split=min_split,
            bootstrap=True,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )

    def fit(self, X: pd.DataFrame, y: pd.Series) -> FittedModel:
        """Validate parameters, then fit preprocessing + estimator on (X, y)."""
        self._validate(X)

        pipeline = Pipeline(
            steps=[
                ("prep", Preprocessor().build(X)),
                ("model", self._build_estimator()),
            ]
        )
        pipeline.fit(X, y)

        self.logger.debug(
            f"Fitted {self.kind} on {len(X)} records "
            f"(balanced_bootstrap={self.balanced_bootstrap}, {self.hyperparameters})"
        )
        return FittedModel(
            kind=self.kind,
            pipeline=pipeline,
            feature_names=tuple(pipeline[0].get_feature_names_out()),
            hyperparameters=self.hyperparameters,
            balanced_bootstrap=self.balanced_bootstrap,
        )
