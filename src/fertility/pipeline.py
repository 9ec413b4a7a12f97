import json
import os
import warnings
from dataclasses import asdict, replace
from typing import Dict, Optional, Union

import pandas as pd

from .balancer import Balancer
from .comparator import BranchFailure, Comparator
from .config import Config
from .cross_validator import CrossValidator
from .data_loader import DataLoader, class_distribution, imbalance_ratio, split_features_target
from .errors import ExperimentError, ParameterValidationError
from .evaluator import Evaluator, MetricRow
from .hyper_tuner import HyperTuner
from .model_trainer import Hyperparameters, ModelTrainer
from .partitioner import Partitioner, Split
from .plotting import plot_class_distribution, plot_comparison, plot_tree
from .utils.logger import get_logger

BALANCER_STRATEGIES = ("none", "downsample", "upsample", "smote")


class PipelineRunner:
    """Imbalance-aware comparison of tree classifiers on the fertility data.

    Steps:
      1. Load the typed table and report the class distribution
      2. Build one stratified train/test split shared by the split-based methods
      3. Run every configured experiment branch independently, each with its own seed:
         none / downsample / upsample / smote resample the training subset,
         balanced_bootstrap resamples per tree, kfold cross-validates the whole
         table and tunes max_features
      4. Collect one MetricRow (or failure) per branch into the comparison table
      5. Save the table (CSV + JSON) and the optional figures"""

    def __init__(self, config: Union[str, Config]):
        self.config = Config.from_yaml(config) if isinstance(config, str) else config
        self.logger = get_logger(self.__class__.__name__)
        self.shared_max_features: Optional[int] = None
        warnings.filterwarnings(
            "ignore",
            message="X does not have valid feature names",
            category=UserWarning,
            module="sklearn",
        )

    def _hyperparameters(self) -> Hyperparameters:
        params = self.config.model
        hp = Hyperparameters(
            max_features=params.get("max_features", 3),
            n_estimators=params.get("n_estimators", 1000),
            min_samples_leaf=params.get("min_samples_leaf", 1),
            min_samples_split=params.get("min_samples_split", 1),
        )
        if self.shared_max_features is not None:
            hp = replace(hp, max_features=self.shared_max_features)
        return hp

    @property
    def _figures_dir(self) -> Optional[str]:
        return self.config.output.get("figures_dir")

    def _run_kfold(self, exp: dict, X: pd.DataFrame, y: pd.Series, evaluator: Evaluator) -> MetricRow:
        cfg = self.config
        if exp.get("model", "forest") != "forest":
            raise ParameterValidationError("The k-fold method evaluates forests only")

        hp = self._hyperparameters()
        tuner = None
        if cfg.tuning.get("enabled", True):
            tuner = HyperTuner(
                sampler=cfg.tuning.get("sampler", "grid"),
                n_trials=cfg.tuning.get("n_trials"),
                random_state=exp.get("seed", 42),
                n_estimators=cfg.tuning.get("n_estimators"),
            )

        fold_balancer = None
        fold_strategy = cfg.validation.get("balance_strategy", "none")
        if fold_strategy != "none":
            fold_balancer = Balancer(
                strategy=fold_strategy,
                random_state=exp.get("seed", 42),
                k_neighbors=cfg.resampling.get("k_neighbors", 8),
                perc_over=cfg.resampling.get("perc_over", 200),
                perc_under=cfg.resampling.get("perc_under", 200),
            )

        validator = CrossValidator(
            n_splits=cfg.validation.get("n_splits", 10),
            random_state=exp.get("seed", 42),
            n_jobs=cfg.model.get("n_jobs", -1),
            balancer=fold_balancer,
        )
        result = validator.run(X, y, hp, method=exp["name"], tuner=tuner, evaluator=evaluator)

        if tuner is not None and cfg.tuning.get("share_max_features", True):
            self.shared_max_features = result.max_features
            self.logger.info(
                f"Sharing max_features={result.max_features} with the following methods"
            )
        return result.metrics

    def _run_split_branch(self, exp: dict, split: Split, evaluator: Evaluator) -> MetricRow:
        cfg = self.config
        strategy = exp["strategy"]
        kind = exp.get("model", "forest")
        seed = exp.get("seed", 42)

        X_train, y_train = split_features_target(split.train)
        X_test, y_test = split_features_target(split.test)

        if strategy in BALANCER_STRATEGIES:
            X_train, y_train = Balancer(
                strategy=strategy,
                random_state=seed,
                k_neighbors=cfg.resampling.get("k_neighbors", 8),
                perc_over=cfg.resampling.get("perc_over", 200),
                perc_under=cfg.resampling.get("perc_under", 200),
            ).balance(X_train, y_train)

        model = ModelTrainer(
            kind=kind,
            hyperparameters=self._hyperparameters(),
            random_state=seed,
            balanced_bootstrap=strategy == "balanced_bootstrap",
            n_jobs=cfg.model.get("n_jobs", -1),
        ).fit(X_train, y_train)

        if kind == "tree" and self._figures_dir:
            safe = "".join(c if c.isalnum() else "_" for c in exp["name"].lower())
            path = plot_tree(model, os.path.join(self._figures_dir, f"tree_{safe}.png"))
            self.logger.info(f"Saved tree plot: {path}")

        return evaluator.evaluate(model, X_test, y_test, exp["name"])

    def _save(self, table: pd.DataFrame, results: Dict[str, Union[MetricRow, BranchFailure]]) -> None:
        out = self.config.output

        table_path = out.get("table_path")
        if table_path:
            os.makedirs(os.path.dirname(table_path) or ".", exist_ok=True)
            table.to_csv(table_path)
            self.logger.info(f"Saved comparison table: {table_path}")

        metrics_path = out.get("metrics_path")
        if metrics_path:
            payload = {}
            for method, result in results.items():
                if isinstance(result, MetricRow):
                    entry = asdict(result)
                    entry["notes"] = list(result.notes)
                else:
                    entry = {"method": method, "error": result.error}
                payload[method] = entry
            os.makedirs(os.path.dirname(metrics_path) or ".", exist_ok=True)
            with open(metrics_path, "w") as f:
                json.dump(payload, f, indent=4)
            self.logger.info(f"Saved metrics: {metrics_path}")

        if self._figures_dir:
            path = plot_comparison(table, os.path.join(self._figures_dir, "comparison.png"))
            self.logger.info(f"Saved comparison plot: {path}")

    def run(self) -> pd.DataFrame:
        cfg = self.config
        self.logger.info("Starting fertility imbalance comparison pipeline")
        self.shared_max_features = None

        df = DataLoader(cfg.data["path"], cfg.data.get("has_header", False)).load()
        self.logger.info(f"Loaded dataset: {df.shape[0]:,} rows x {df.shape[1]} cols")

        counts = class_distribution(df)
        self.logger.info(
            f"Class distribution: {counts.to_dict()} "
            f"(imbalance ratio {imbalance_ratio(counts):.2f}:1)"
        )
        if self._figures_dir:
            plot_class_distribution(counts, os.path.join(self._figures_dir, "class_distribution.png"))

        split: Optional[Split] = None
        split_error: Optional[ExperimentError] = None
        try:
            split = Partitioner(
                train_fraction=cfg.validation.get("train_fraction", 0.67),
                random_state=cfg.validation.get("random_state", 42),
            ).split(df)
        except ExperimentError as exc:
            split_error = exc
            self.logger.error(f"Stratified split failed, split-based methods skipped: {exc}")

        evaluator = Evaluator(figures_dir=self._figures_dir)
        X_full, y_full = split_features_target(df)
        results: Dict[str, Union[MetricRow, BranchFailure]] = {}

        for exp in cfg.experiments:
            name = exp["name"]
            self.logger.info(f"Running method '{name}' (strategy={exp['strategy']})")
            try:
                if exp["strategy"] == "kfold":
                    results[name] = self._run_kfold(exp, X_full, y_full, evaluator)
                elif split is None:
                    results[name] = BranchFailure(
                        name, f"{type(split_error).__name__}: {split_error}"
                    )
                else:
                    results[name] = self._run_split_branch(exp, split, evaluator)
            except ExperimentError as exc:
                self.logger.error(f"Method '{name}' failed: {type(exc).__name__}: {exc}")
                results[name] = BranchFailure(name, f"{type(exc).__name__}: {exc}")

        comparator = Comparator([exp["name"] for exp in cfg.experiments])
        table = comparator.compare(results)
        self.logger.info(f"Method comparison:\n{comparator.render(table)}")

        self._save(table, results)
        self.logger.info("Pipeline finished")
        return table
