import numpy as np
import pandas as pd
import pytest

from fertility.data_loader import coerce_schema
from fertility.partitioner import Partitioner


def make_raw_fertility(n_normal: int = 88, n_abnormal: int = 12, seed: int = 0) -> pd.DataFrame:
    """Raw table in file layout: 9 coded predictors + N/O diagnosis, positional columns."""
    rng = np.random.RandomState(seed)
    n = n_normal + n_abnormal
    return pd.DataFrame(
        {
            0: rng.choice([-1.0, -0.33, 0.33, 1.0], n),
            1: np.round(rng.uniform(0.5, 1.0, n), 2),
            2: rng.choice([0, 1], n),
            3: rng.choice([0, 1], n),
            4: rng.choice([0, 1], n),
            5: rng.choice([-1, 0, 1], n),
            6: rng.choice([0.2, 0.4, 0.6, 0.8, 1.0], n),
            7: rng.choice([-1, 0, 1], n),
            8: np.round(rng.uniform(0.06, 1.0, n), 2),
            9: rng.permutation(["N"] * n_normal + ["O"] * n_abnormal),
        }
    )


@pytest.fixture
def raw_fertility():
    return make_raw_fertility()


@pytest.fixture
def fertility_df(raw_fertility):
    return coerce_schema(raw_fertility)


@pytest.fixture
def fertility_csv(tmp_path, raw_fertility):
    path = tmp_path / "fertility_Diagnosis.txt"
    raw_fertility.to_csv(path, header=False, index=False)
    return path


@pytest.fixture
def make_fertility():
    """Factory for typed tables with a chosen class balance."""
    def _make(n_normal: int = 88, n_abnormal: int = 12, seed: int = 0) -> pd.DataFrame:
        return coerce_schema(make_raw_fertility(n_normal, n_abnormal, seed))
    return _make


@pytest.fixture
def split(fertility_df):
    """Common 67/33 stratified split: train 59/8, test 29/4."""
    return Partitioner(train_fraction=0.67, random_state=1).split(fertility_df)
