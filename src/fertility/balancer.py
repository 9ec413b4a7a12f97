import numpy as np
import pandas as pd
from typing import Tuple, Literal
from imblearn.over_sampling import SMOTE, SMOTENC
from imblearn.under_sampling import RandomUnderSampler

from .errors import InsufficientClassSizeError, InsufficientNeighborsError
from .utils.logger import get_logger


class Balancer:
    """
    Handles class imbalance of a training subset via down-sampling,
    up-sampling, or SMOTE. The test subset is never passed through here.

    Rows drawn from the input keep their index labels, so the output can be
    traced back to the source records.

    Example:
        balancer = Balancer(strategy="smote", random_state=7)
        Xb, yb = balancer.balance(X_train, y_train)
    """

    def __init__(
        self,
        strategy: Literal["none", "downsample", "upsample", "smote"] = "none",
        random_state: int = 42,
        k_neighbors: int = 8,
        perc_over: int = 200,
        perc_under: int = 200,
    ):
        self.strategy = strategy
        self.random_state = random_state
        self.k_neighbors = k_neighbors
        self.perc_over = perc_over
        self.perc_under = perc_under
        self.logger = get_logger(self.__class__.__name__)

    def balance(self, X: pd.DataFrame, y: pd.Series) -> Tuple[pd.DataFrame, pd.Series]:
        if self.strategy == "none":
            return X, y

        if self.strategy not in ("downsample", "upsample", "smote"):
            raise ValueError(f"Unknown balancing strategy: {self.strategy}")

        counts = y.value_counts()
        if len(counts) < 2:
            raise InsufficientClassSizeError(
                f"Only one class present ({counts.to_dict()}); cannot apply {self.strategy}"
            )

        majority, minority = counts.index[0], counts.index[-1]
        y_arr = y.to_numpy()
        pos_min = np.flatnonzero(y_arr == minority)
        pos_maj = np.flatnonzero(y_arr == majority)

        self.logger.info(
            f"Applying class balancing: {self.strategy} "
            f"({majority}={len(pos_maj)}, {minority}={len(pos_min)})"
        )

        if self.strategy == "smote":
            X_bal, y_bal = self._smote(X, y, majority, minority)
        else:
            rng = np.random.RandomState(self.random_state)
            if self.strategy == "downsample":
                keep_maj = rng.choice(pos_maj, size=len(pos_min), replace=False)
                keep = np.concatenate([pos_min, keep_maj])
            else:
                extra = rng.choice(pos_min, size=len(pos_maj) - len(pos_min), replace=True)
                keep = np.concatenate([np.arange(len(y_arr)), extra])
            rng.shuffle(keep)
            X_bal, y_bal = X.iloc[keep], y.iloc[keep]

        self.logger.info(f"Balanced class counts: {y_bal.value_counts().to_dict()}")
        return X_bal, y_bal

    def _smote(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        majority,
        minority,
    ) -> Tuple[pd.DataFrame, pd.Series]:
        """SMOTE on the minority class, then random under-sampling of the majority.

        Synthetic count is minority * perc_over / 100; the majority keeps
        min(majority, synthetic * perc_under / 100) records.
        """
        n_min = int((y == minority).sum())
        n_maj = int((y == majority).sum())
        if n_min <= self.k_neighbors:
            raise InsufficientNeighborsError(
                f"SMOTE needs more than k={self.k_neighbors} minority records, got {n_min}"
            )

        n_synthetic = n_min * self.perc_over // 100
        n_keep_maj = min(n_maj, n_synthetic * self.perc_under // 100)

        categorical = [
            i for i, col in enumerate(X.columns)
            if isinstance(X[col].dtype, pd.CategoricalDtype)
        ]
        target = {minority: n_min + n_synthetic}
        if categorical:
            sampler = SMOTENC(
                categorical_features=categorical,
                sampling_strategy=target,
                k_neighbors=self.k_neighbors,
                random_state=self.random_state,
            )
        else:
            sampler = SMOTE(
                sampling_strategy=target,
                k_neighbors=self.k_neighbors,
                random_state=self.random_state,
            )

        X_num = X.astype(float)
        X_over, y_over = sampler.fit_resample(X_num, y)

        under = RandomUnderSampler(
            sampling_strategy={majority: n_keep_maj},
            random_state=self.random_state,
        )
        X_res, y_res = under.fit_resample(X_over, y_over)

        X_res = pd.DataFrame(X_res, columns=X.columns).reset_index(drop=True)
        for col in X.columns:
            X_res[col] = X_res[col].astype(float).astype(X[col].dtype)
        y_res = pd.Series(np.asarray(y_res), name=y.name)
        return X_res, y_res
