"""Report figures: class balance, confusion matrices, method comparison, tree."""

import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from sklearn.tree import plot_tree as sk_plot_tree

from .data_loader import NEGATIVE_LABEL


def _save(path: str) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    plt.tight_layout()
    plt.savefig(path, dpi=200)
    plt.close()
    return path


def plot_class_distribution(counts: pd.Series, path: str, title: str = "Class Distribution") -> str:
    plt.figure(figsize=(5, 4))
    ax = sns.barplot(x=counts.index.astype(str), y=counts.to_numpy(), color="steelblue")
    for i, value in enumerate(counts.to_numpy()):
        ax.text(i, value, str(int(value)), ha="center", va="bottom")
    plt.xlabel("Diagnosis")
    plt.ylabel("Records")
    plt.title(title)
    return _save(path)


def plot_confusion_matrix(cm, path: str, title: str = "Confusion Matrix") -> str:
    """Heatmap with predicted labels on x and true labels on y."""
    labels = [NEGATIVE_LABEL, cm.positive_label]
    grid = [[cm.tn, cm.fp], [cm.fn, cm.tp]]

    plt.figure(figsize=(5, 4))
    sns.heatmap(grid, annot=True, fmt="d", cmap="Blues", xticklabels=labels, yticklabels=labels)
    plt.xlabel("Predicted")
    plt.ylabel("Actual")
    plt.title(title)
    return _save(path)


def plot_comparison(table: pd.DataFrame, path: str) -> str:
    """Grouped bars of Accuracy/Sensitivity/Specificity per method."""
    long = (
        table[["Accuracy", "Sensitivity", "Specificity"]]
        .rename_axis("Method")
        .reset_index()
        .melt(id_vars="Method", var_name="Metric", value_name="Score")
    )
    plt.figure(figsize=(9, 5))
    sns.barplot(data=long, x="Method", y="Score", hue="Metric")
    plt.ylim(0, 1)
    plt.xticks(rotation=30, ha="right")
    plt.title("Method Comparison")
    return _save(path)


def plot_tree(model, path: str, max_depth: int = 4) -> str:
    """Draw a fitted single-tree model (FittedModel with kind 'tree')."""
    estimator = model.pipeline[-1]
    plt.figure(figsize=(14, 8))
    sk_plot_tree(
        estimator,
        feature_names=list(model.feature_names),
        class_names=[str(c) for c in estimator.classes_],
        filled=True,
        max_depth=max_depth,
        fontsize=7,
    )
    return _save(path)
