import os
from typing import Dict, List, Tuple, Union

import pandas as pd

from .errors import DataIntegrityError

TARGET_COL = "diagnosis"
POSITIVE_LABEL = "abnormal"
NEGATIVE_LABEL = "normal"
LABELS = (NEGATIVE_LABEL, POSITIVE_LABEL)
LABEL_CODES = {"N": NEGATIVE_LABEL, "O": POSITIVE_LABEL}

# Ordered levels of the coded categorical predictors
CATEGORICAL_LEVELS: Dict[str, List[float]] = {
    "season": [-1.0, -0.33, 0.33, 1.0],
    "childish_diseases": [0.0, 1.0],
    "accident": [0.0, 1.0],
    "surgical_intervention": [0.0, 1.0],
    "high_fevers": [-1.0, 0.0, 1.0],
    "smoking": [-1.0, 0.0, 1.0],
}
CONTINUOUS_COLUMNS = ["age", "alcohol", "sitting_hours"]

# File order
FEATURE_COLUMNS = [
    "season",
    "age",
    "childish_diseases",
    "accident",
    "surgical_intervention",
    "high_fevers",
    "alcohol",
    "smoking",
    "sitting_hours",
]
COLUMNS = FEATURE_COLUMNS + [TARGET_COL]


def coerce_schema(raw: pd.DataFrame) -> pd.DataFrame:
    """Validate a raw fertility table and return a typed copy.

    Columns are renamed positionally to the canonical names, coded
    categorical predictors become ordered categoricals and the N/O
    response is recoded to "normal"/"abnormal".
    """
    if raw.shape[1] != len(COLUMNS):
        raise DataIntegrityError(
            f"Expected {len(COLUMNS)} columns, found {raw.shape[1]}"
        )
    if raw.empty:
        raise DataIntegrityError("Input table has no rows")

    df = raw.copy()
    df.columns = COLUMNS

    null_cols = df.columns[df.isna().any()].tolist()
    if null_cols:
        raise DataIntegrityError(f"Missing values in columns: {null_cols}")

    try:
        df[FEATURE_COLUMNS] = df[FEATURE_COLUMNS].astype(float)
    except (TypeError, ValueError) as exc:
        raise DataIntegrityError(f"Non-numeric predictor value: {exc}") from exc

    for col, levels in CATEGORICAL_LEVELS.items():
        dtype = pd.CategoricalDtype(categories=levels, ordered=True)
        typed = df[col].astype(dtype)
        bad = df.loc[typed.isna(), col].unique().tolist()
        if bad:
            raise DataIntegrityError(f"Column '{col}' has values outside {levels}: {bad}")
        df[col] = typed

    codes = df[TARGET_COL].astype(str).str.strip()
    unknown = sorted(set(codes) - set(LABEL_CODES))
    if unknown:
        raise DataIntegrityError(f"Unknown diagnosis codes: {unknown}")
    df[TARGET_COL] = codes.map(LABEL_CODES)

    return df


def split_features_target(df: pd.DataFrame) -> Tuple[pd.DataFrame, pd.Series]:
    return df[FEATURE_COLUMNS], df[TARGET_COL]


def class_distribution(data: Union[pd.DataFrame, pd.Series]) -> pd.Series:
    """Count records per label, in canonical label order."""
    y = data[TARGET_COL] if isinstance(data, pd.DataFrame) else data
    return y.value_counts().reindex(list(LABELS), fill_value=0).astype(int)


def imbalance_ratio(counts: pd.Series) -> float:
    """Majority count over minority count (inf when a class is absent)."""
    minority = int(counts.min())
    if minority == 0:
        return float("inf")
    return float(counts.max()) / minority


class DataLoader:
    """Loads the fertility table (CSV/TXT) and applies the typed schema."""

    def __init__(self, path: str, has_header: bool = False):
        self.path = path
        self.has_header = has_header

    def load(self) -> pd.DataFrame:
        if not os.path.exists(self.path):
            raise DataIntegrityError(f"Data file not found: {self.path}")
        try:
            raw = pd.read_csv(self.path, header=0 if self.has_header else None)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
            raise DataIntegrityError(f"Malformed data file {self.path}: {exc}") from exc
        return coerce_schema(raw)
