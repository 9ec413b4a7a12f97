from dataclasses import dataclass

import pandas as pd
from sklearn.model_selection import train_test_split

from .data_loader import TARGET_COL, class_distribution
from .errors import InsufficientClassSizeError, ParameterValidationError
from .utils.logger import get_logger


@dataclass(frozen=True, eq=False)
class Split:
    """Disjoint train/test partition of a dataset (source index labels kept)."""
    train: pd.DataFrame
    test: pd.DataFrame


class Partitioner:
    """Stratified train/test split with an explicit seed."""

    def __init__(self, train_fraction: float = 0.67, random_state: int = 42):
        self.train_fraction = train_fraction
        self.random_state = random_state
        self.logger = get_logger(self.__class__.__name__)

    def split(self, df: pd.DataFrame) -> Split:
        if not 0.0 < self.train_fraction < 1.0:
            raise ParameterValidationError(
                f"train_fraction must be in (0, 1), got {self.train_fraction}"
            )

        counts = class_distribution(df)
        too_small = counts[counts < 2]
        if not too_small.empty:
            raise InsufficientClassSizeError(
                f"Cannot stratify: classes with fewer than 2 records: {too_small.to_dict()}"
            )

        n_train = int(round(self.train_fraction * len(df)))
        n_classes = int((counts > 0).sum())
        if n_train < n_classes or len(df) - n_train < n_classes:
            raise InsufficientClassSizeError(
                f"train_fraction={self.train_fraction} leaves {n_train} train and "
                f"{len(df) - n_train} test records for {n_classes} classes"
            )

        train, test = train_test_split(
            df,
            train_size=n_train,
            stratify=df[TARGET_COL],
            random_state=self.random_state,
        )

        self.logger.info(
            f"Stratified split: train={len(train)} {class_distribution(train).to_dict()}, "
            f"test={len(test)} {class_distribution(test).to_dict()}"
        )
        return Split(train=train, test=test)
