"""
Fertility Diagnosis — Imbalance-Aware Tree Classifier Comparison

This package loads the 100-record fertility table, explores its class
imbalance, and compares random forests trained under several balancing
strategies (none, k-fold CV, down-sampling, up-sampling, SMOTE and
balanced bootstrap sampling) on accuracy, sensitivity and specificity.

Modules:
    config              — Load YAML configuration safely.
    errors              — Error taxonomy (data integrity, per-branch failures, degenerate metrics).
    data_loader         — Read the table, type the predictors, recode the diagnosis.
    preprocessor        — Ordinal-encode categorical predictors.
    partitioner         — Stratified train/test split.
    balancer            — Down-sampling, up-sampling and SMOTE of a training subset.
    model_trainer       — Fit a gini decision tree or (balanced) random forest.
    evaluator           — Majority-vote prediction, confusion matrix and metrics.
    cross_validator     — Stratified k-fold evaluation with pooled predictions.
    hyper_tuner         — Tune max_features with Optuna.
    comparator          — Per-method comparison table.
    plotting            — Report figures.
    pipeline            — Orchestrates all components.
    utils.logger        — Unified timestamped console logger.
"""

from .config import Config
from .data_loader import DataLoader
from .preprocessor import Preprocessor
from .partitioner import Partitioner, Split
from .balancer import Balancer
from .model_trainer import FittedModel, Hyperparameters, ModelTrainer
from .evaluator import ConfusionMatrix, Evaluator, MetricRow
from .cross_validator import CrossValidator
from .hyper_tuner import HyperTuner
from .comparator import BranchFailure, Comparator
from .pipeline import PipelineRunner

__all__ = [
    "Config",
    "DataLoader",
    "Preprocessor",
    "Partitioner",
    "Split",
    "Balancer",
    "FittedModel",
    "Hyperparameters",
    "ModelTrainer",
    "ConfusionMatrix",
    "Evaluator",
    "MetricRow",
    "CrossValidator",
    "HyperTuner",
    "BranchFailure",
    "Comparator",
    "PipelineRunner",
]
