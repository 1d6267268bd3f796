"""
Model Evaluation Module
=======================

Validates the final model against the held-out partition.

Features:
    - Confusion matrix (actual vs predicted)
    - Accuracy with exact binomial confidence interval, Cohen's kappa
    - Out-of-sample error estimate
    - Per-class precision, sensitivity, specificity and F1
    - Evaluation report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats
from sklearn.metrics import accuracy_score, cohen_kappa_score, confusion_matrix

logger = logging.getLogger(__name__)


def confusion_matrix_frame(
    y_true: Sequence,
    y_pred: Sequence,
    labels: Optional[List[str]] = None
) -> pd.DataFrame:
    """
    Confusion matrix as a labelled DataFrame.

    Rows are actual classes, columns are predicted classes.
    """
    if labels is None:
        labels = sorted(set(np.asarray(y_true).tolist()) | set(np.asarray(y_pred).tolist()))

    cm = confusion_matrix(y_true, y_pred, labels=labels)
    return pd.DataFrame(
        cm,
        index=pd.Index(labels, name='Actual'),
        columns=pd.Index(labels, name='Predicted')
    )


def accuracy_confidence_interval(
    n_correct: int,
    n_total: int,
    confidence_level: float = 0.95
) -> Tuple[float, float]:
    """Exact (Clopper-Pearson) confidence interval for an accuracy."""
    if n_total == 0:
        return float('nan'), float('nan')
    ci = stats.binomtest(n_correct, n_total).proportion_ci(
        confidence_level=confidence_level, method='exact'
    )
    return float(ci.low), float(ci.high)


def calculate_metrics(
    y_true: Sequence,
    y_pred: Sequence,
    labels: Optional[List[str]] = None
) -> Dict[str, Any]:
    """
    Calculate classification metrics for the held-out set.

    Args:
        y_true: Actual class labels
        y_pred: Predicted class labels
        labels: Class order for the confusion matrix (optional)

    Returns:
        Dictionary containing overall and per-class metrics
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)

    if len(y_true) != len(y_pred):
        raise ValueError(f"Length mismatch: {len(y_true)} actual vs {len(y_pred)} predicted")
    if len(y_true) == 0:
        raise ValueError("Cannot evaluate an empty prediction set")

    cm_df = confusion_matrix_frame(y_true, y_pred, labels)
    cm = cm_df.values
    labels = list(cm_df.index)
    n_total = int(cm.sum())
    n_correct = int(np.trace(cm))

    accuracy = float(accuracy_score(y_true, y_pred))
    ci_low, ci_high = accuracy_confidence_interval(n_correct, n_total)

    # Largest class share among the actual labels
    no_information_rate = float(cm.sum(axis=1).max() / n_total)

    per_class = {}
    for i, label in enumerate(labels):
        tp = cm[i, i]
        fn = cm[i, :].sum() - tp
        fp = cm[:, i].sum() - tp
        tn = n_total - tp - fn - fp

        precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
        sensitivity = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        specificity = tn / (tn + fp) if (tn + fp) > 0 else 0.0
        f1 = (2 * precision * sensitivity / (precision + sensitivity)
              if (precision + sensitivity) > 0 else 0.0)

        per_class[str(label)] = {
            'precision': float(precision),
            'sensitivity': float(sensitivity),
            'specificity': float(specificity),
            'f1': float(f1),
            'balanced_accuracy': float((sensitivity + specificity) / 2),
            'support': int(tp + fn)
        }

    metrics = {
        'overall': {
            'accuracy': accuracy,
            'accuracy_ci_lower': ci_low,
            'accuracy_ci_upper': ci_high,
            'kappa': float(cohen_kappa_score(y_true, y_pred, labels=labels)),
            'out_of_sample_error': 1.0 - accuracy,
            'no_information_rate': no_information_rate,
            'n_samples': n_total,
            'n_correct': n_correct
        },
        'per_class': per_class,
        'labels': [str(label) for label in labels],
        'confusion_matrix': cm.tolist()
    }

    return metrics


def plot_confusion_matrix(
    cm_df: pd.DataFrame,
    normalize: bool = False,
    figsize: Tuple[int, int] = (8, 7),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Draw the confusion matrix as an annotated heatmap.

    Args:
        cm_df: DataFrame from confusion_matrix_frame
        normalize: Show row-normalized rates instead of counts
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    data = cm_df.div(cm_df.sum(axis=1).replace(0, 1), axis=0) if normalize else cm_df

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(
        data,
        annot=True,
        fmt='.2f' if normalize else 'd',
        cmap='Blues',
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Rate" if normalize else "Count"},
        ax=ax
    )

    ax.set_title('Confusion Matrix' + (' (Normalized)' if normalize else ''),
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Confusion matrix saved to {save_path}")

    return fig


def plot_per_class_metrics(
    metrics: Dict[str, Any],
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of precision, sensitivity and specificity per class.

    Args:
        metrics: Metrics dictionary from calculate_metrics
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    per_class = pd.DataFrame(metrics['per_class']).T[['precision', 'sensitivity', 'specificity']]
    per_class.index.name = 'class'
    data = per_class.reset_index().melt(id_vars='class', var_name='metric', value_name='score')

    fig, ax = plt.subplots(figsize=figsize)
    sns.barplot(data=data, x='class', y='score', hue='metric', ax=ax)
    ax.axhline(metrics['overall']['accuracy'], color='red', linestyle='--',
               label=f"Accuracy: {metrics['overall']['accuracy']:.4f}")

    ax.set_ylim([min(0.8, data['score'].min() - 0.05), 1.01])
    ax.set_xlabel('Class')
    ax.set_ylabel('Score')
    ax.set_title('Per-Class Performance', fontsize=14, fontweight='bold')
    ax.legend(fontsize=8, loc='lower right')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Per-class metrics plot saved to {save_path}")

    return fig


def evaluate_model(
    y_true: Sequence,
    y_pred: Sequence,
    labels: Optional[List[str]] = None,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run complete model evaluation and generate all reports.

    Args:
        y_true: Actual class labels
        y_pred: Predicted class labels
        labels: Class order (optional)
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics, confusion matrix and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL VALIDATION")
    logger.info("=" * 60)

    logger.info("Calculating evaluation metrics...")
    metrics = calculate_metrics(y_true, y_pred, labels)
    cm_df = pd.DataFrame(
        metrics['confusion_matrix'],
        index=pd.Index(metrics['labels'], name='Actual'),
        columns=pd.Index(metrics['labels'], name='Predicted')
    )

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    cm_file = metrics_dir / "confusion_matrix.csv"
    cm_df.to_csv(cm_file)

    figures = []

    logger.info("Generating confusion matrix...")
    plot_confusion_matrix(cm_df, save_path=str(figures_dir / "eval_confusion_matrix.png"))
    figures.append("eval_confusion_matrix.png")

    logger.info("Generating per-class metrics...")
    plot_per_class_metrics(metrics, save_path=str(figures_dir / "eval_per_class_metrics.png"))
    figures.append("eval_per_class_metrics.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    result = {
        'metrics': metrics,
        'confusion_matrix': cm_df,
        'figures': figures,
        'metrics_file': str(metrics_file),
        'confusion_matrix_file': str(cm_file)
    }

    logger.info("=" * 60)
    logger.info("VALIDATION COMPLETE")
    logger.info(f"  Accuracy: {metrics['overall']['accuracy']:.6f}")
    logger.info(f"  Kappa: {metrics['overall']['kappa']:.6f}")
    logger.info(f"  Out-of-sample error: {metrics['overall']['out_of_sample_error']:.6f}")
    logger.info("=" * 60)

    return result


def print_evaluation_report(metrics: Dict[str, Any]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        metrics: Metrics dictionary from calculate_metrics
    """
    overall = metrics['overall']
    labels = metrics['labels']
    cm_df = pd.DataFrame(
        metrics['confusion_matrix'],
        index=pd.Index(labels, name='Actual'),
        columns=pd.Index(labels, name='Predicted')
    )

    print("\n" + "=" * 70)
    print("MODEL VALIDATION REPORT")
    print("=" * 70)

    print("\nConfusion Matrix:")
    print("-" * 70)
    print(cm_df.to_string())

    print("\nPer-Class Metrics:")
    print("-" * 70)
    print(f"{'Class':<8} {'Precision':<12} {'Sensitivity':<12} {'Specificity':<12} {'F1':<10} {'Support':<8}")
    print("-" * 70)

    for label, m in metrics['per_class'].items():
        print(f"{label:<8} {m['precision']:<12.4f} {m['sensitivity']:<12.4f} "
              f"{m['specificity']:<12.4f} {m['f1']:<10.4f} {m['support']:<8d}")

    print("-" * 70)
    print("\nOverall Metrics:")
    print(f"  • Accuracy: {overall['accuracy']:.4f} "
          f"(95% CI: {overall['accuracy_ci_lower']:.4f}, {overall['accuracy_ci_upper']:.4f})")
    print(f"  • Kappa: {overall['kappa']:.4f}")
    print(f"  • No-information rate: {overall['no_information_rate']:.4f}")
    print(f"  • Out-of-sample error: {overall['out_of_sample_error'] * 100:.2f}%")
    print(f"  • Samples evaluated: {overall['n_samples']}")

    print("=" * 70 + "\n")
