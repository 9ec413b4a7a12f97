from __future__ import annotations

from typing import Optional

import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.preprocessing import OrdinalEncoder

from fertility.data_loader import CATEGORICAL_LEVELS
from fertility.utils.logger import get_logger


class Preprocessor:
    """Builds a ColumnTransformer for coded categorical/continuous predictors."""

    def __init__(self, verbose: bool = False):
        """
        Parameters
        ----------
        verbose:
            If True, logs detected feature groups.
        """
        self.verbose = verbose
        self.logger = get_logger(self.__class__.__name__)
        self.transformer: Optional[ColumnTransformer] = None

    def build(self, X: pd.DataFrame) -> ColumnTransformer:
        """Build (but do not fit) the preprocessing transformer.

        Categorical columns are mapped to ordinal codes using their declared
        levels; everything else passes through. The output keeps one column
        per predictor so max_features still counts predictors.
        """
        categorical_cols = X.select_dtypes(include=["category"]).columns.tolist()
        continuous_cols = [col for col in X.columns if col not in categorical_cols]

        categories = [
            CATEGORICAL_LEVELS.get(col, list(X[col].cat.categories))
            for col in categorical_cols
        ]

        self.transformer = ColumnTransformer(
            transformers=[
                ("cat", OrdinalEncoder(categories=categories), categorical_cols),
                ("num", "passthrough", continuous_cols),
            ],
            remainder="drop",
            verbose_feature_names_out=False,
        )

        if self.verbose:
            self.logger.info(
                f"Columns detected: continuous={len(continuous_cols)}, "
                f"categorical={len(categorical_cols)}"
            )

        return self.transformer
