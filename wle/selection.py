"""
Model Selection Module
======================

Compares candidate models by their cross-validated accuracy.
"""

import logging
from typing import Dict, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from .model import ActivityClassifier

logger = logging.getLogger(__name__)


def compare_models(models: Dict[str, ActivityClassifier]) -> pd.DataFrame:
    """
    Tabulate cross-validated accuracy for each trained model.

    Args:
        models: Mapping of model type to trained model

    Returns:
        DataFrame indexed by model type, best mean accuracy first
    """
    if not models:
        raise ValueError("No models to compare")

    rows = []
    for order, (model_type, model) in enumerate(models.items()):
        scores = np.asarray(model.training_info.get('cv_scores', []), dtype=float)
        if scores.size == 0:
            raise ValueError(f"Model '{model_type}' has no cross-validation scores")

        rows.append({
            'model_type': model_type,
            'model': model.name,
            'cv_mean_accuracy': float(scores.mean()),
            'cv_std_accuracy': float(scores.std()),
            'cv_min_accuracy': float(scores.min()),
            'cv_max_accuracy': float(scores.max()),
            'cv_folds': int(scores.size),
            'training_seconds': float(model.training_info.get('training_duration_seconds', np.nan)),
            '_order': order
        })

    # Stable on ties: input order decides
    comparison = (
        pd.DataFrame(rows)
        .sort_values(['cv_mean_accuracy', '_order'], ascending=[False, True])
        .drop(columns='_order')
        .set_index('model_type')
    )
    return comparison


def select_best_model(comparison: pd.DataFrame) -> str:
    """Return the model type with the highest mean CV accuracy."""
    best = comparison.index[0]
    logger.info(
        f"Selected model: {best} "
        f"(CV accuracy {comparison.loc[best, 'cv_mean_accuracy']:.4f})"
    )
    return best


def plot_cv_comparison(
    models: Dict[str, ActivityClassifier],
    figsize: Tuple[int, int] = (8, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot per-fold cross-validated accuracy for each model.

    Args:
        models: Mapping of model type to trained model
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    records = [
        {'model': model.name, 'fold': fold + 1, 'accuracy': score}
        for model in models.values()
        for fold, score in enumerate(model.training_info.get('cv_scores', []))
    ]
    scores = pd.DataFrame(records)

    fig, ax = plt.subplots(figsize=figsize)
    sns.boxplot(data=scores, x='model', y='accuracy', ax=ax, width=0.4)
    sns.stripplot(data=scores, x='model', y='accuracy', ax=ax, color='black', size=6, alpha=0.7)

    ax.set_xlabel('')
    ax.set_ylabel('Cross-validated accuracy')
    ax.set_title('Model Comparison - Accuracy per Fold', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"CV comparison plot saved to {save_path}")

    return fig


def print_model_comparison(comparison: pd.DataFrame) -> None:
    """
    Print the model comparison table to console.

    Args:
        comparison: DataFrame from compare_models
    """
    print("\n" + "=" * 70)
    print("MODEL COMPARISON (CROSS-VALIDATED ACCURACY)")
    print("=" * 70)
    print(f"{'Model':<25} {'Mean':<10} {'Std':<10} {'Min':<10} {'Max':<10} {'Folds':<6}")
    print("-" * 70)

    for _, row in comparison.iterrows():
        print(f"{row['model']:<25} {row['cv_mean_accuracy']:<10.4f} {row['cv_std_accuracy']:<10.4f} "
              f"{row['cv_min_accuracy']:<10.4f} {row['cv_max_accuracy']:<10.4f} {row['cv_folds']:<6d}")

    print("-" * 70)
    best = comparison.iloc[0]
    print(f"\n✓ Best model: {best['model']} ({best['cv_mean_accuracy']:.4f})")
    print("=" * 70 + "\n")
