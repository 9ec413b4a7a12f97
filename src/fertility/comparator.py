from dataclasses import dataclass
from typing import Mapping, Sequence, Union

import numpy as np
import pandas as pd

from .evaluator import MetricRow

COLUMNS = ["Accuracy", "Sensitivity", "Specificity", "Notes"]


@dataclass(frozen=True)
class BranchFailure:
    """An experiment branch that raised instead of producing metrics."""
    method: str
    error: str


class Comparator:
    """Collects per-method results into one table, in methodology order.

    Pure aggregation: nothing is recomputed or re-sorted. Failed and absent
    branches are kept as rows of NaN with a MISSING note.
    """

    def __init__(self, methods: Sequence[str]):
        self.methods = list(methods)

    @staticmethod
    def _value(value):
        return np.nan if value is None else value

    def compare(self, results: Mapping[str, Union[MetricRow, BranchFailure]]) -> pd.DataFrame:
        order = self.methods + [m for m in results if m not in self.methods]
        rows = []
        for method in order:
            result = results.get(method)
            if isinstance(result, MetricRow):
                rows.append(
                    {
                        "Accuracy": result.accuracy,
                        "Sensitivity": self._value(result.sensitivity),
                        "Specificity": self._value(result.specificity),
                        "Notes": "; ".join(result.notes),
                    }
                )
            else:
                reason = result.error if isinstance(result, BranchFailure) else "not run"
                rows.append(
                    {
                        "Accuracy": np.nan,
                        "Sensitivity": np.nan,
                        "Specificity": np.nan,
                        "Notes": f"MISSING: {reason}",
                    }
                )

        table = pd.DataFrame(rows, index=pd.Index(order, name="Method"), columns=COLUMNS)
        table[["Sensitivity", "Specificity"]] = (
            table[["Sensitivity", "Specificity"]].astype(float).round(4)
        )
        table["Accuracy"] = table["Accuracy"].astype(float)
        return table

    @staticmethod
    def render(table: pd.DataFrame) -> str:
        return table.to_string(na_rep="n/a")
