from dataclasses import dataclass, field
from typing import Any, Dict, List

import yaml

EXPERIMENT_STRATEGIES = (
    "none",
    "kfold",
    "downsample",
    "upsample",
    "smote",
    "balanced_bootstrap",
)

# Resampling applied to the training folds of the k-fold method
FOLD_BALANCE_STRATEGIES = ("none", "downsample", "upsample", "smote")


@dataclass
class Config:
    """Configuration object loaded from YAML."""
    data: Dict[str, Any] = field(default_factory=dict)
    model: Dict[str, Any] = field(default_factory=dict)
    resampling: Dict[str, Any] = field(default_factory=dict)
    validation: Dict[str, Any] = field(default_factory=dict)
    tuning: Dict[str, Any] = field(default_factory=dict)
    experiments: List[Dict[str, Any]] = field(default_factory=list)
    output: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if "path" not in self.data:
            raise ValueError("Config 'data.path' is required")

        fold_strategy = self.validation.get("balance_strategy", "none")
        if fold_strategy not in FOLD_BALANCE_STRATEGIES:
            raise ValueError(f"Unknown validation.balance_strategy '{fold_strategy}'")

        names = set()
        for exp in self.experiments:
            for key in ("name", "strategy"):
                if key not in exp:
                    raise ValueError(f"Experiment entry missing '{key}': {exp}")
            if exp["strategy"] not in EXPERIMENT_STRATEGIES:
                raise ValueError(
                    f"Unknown strategy '{exp['strategy']}' for experiment '{exp['name']}'"
                )
            if exp["name"] in names:
                raise ValueError(f"Duplicate experiment name: {exp['name']}")
            names.add(exp["name"])

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "Config":
        return cls(**cfg)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        with open(path, "r") as f:
            cfg = yaml.safe_load(f)
        return cls.from_dict(cfg)
