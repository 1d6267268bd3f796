"""
Exploratory Data Analysis (EDA) Module
======================================

Summaries and figures describing the raw sensor data.

Functions:
    - missing_value_summary: Per-column missingness table
    - plot_class_distribution: Label frequency bar chart
    - plot_missingness: Histogram of per-column missing share
    - plot_correlation_matrix: Correlation heatmap of the most variable features
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def missing_value_summary(df: pd.DataFrame) -> pd.DataFrame:
    """
    Count missing values per column.

    Args:
        df: DataFrame to analyze

    Returns:
        DataFrame indexed by column with ``n_missing`` and ``pct_missing``,
        most incomplete first
    """
    n_missing = df.isnull().sum()
    summary = pd.DataFrame({
        'n_missing': n_missing.astype(int),
        'pct_missing': (n_missing / max(len(df), 1) * 100).astype(float)
    })
    return summary.sort_values('pct_missing', ascending=False, kind='stable')


def plot_class_distribution(
    y: pd.Series,
    figsize: Tuple[int, int] = (8, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of class frequencies.

    Args:
        y: Class labels
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    counts = y.value_counts().sort_index()

    fig, ax = plt.subplots(figsize=figsize)
    ax.bar(counts.index.astype(str), counts.values, alpha=0.8)

    for idx, value in enumerate(counts.values):
        ax.annotate(f"{value / counts.sum() * 100:.1f}%", (idx, value),
                    ha='center', va='bottom', fontsize=9)

    ax.set_xlabel('Class')
    ax.set_ylabel('Observations')
    ax.set_title('Class Distribution', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Class distribution plot saved to {save_path}")

    return fig


def plot_missingness(
    summary: pd.DataFrame,
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram of the share of missing values per column.

    Args:
        summary: DataFrame from missing_value_summary
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    sns.histplot(summary['pct_missing'], bins=20, ax=ax, alpha=0.7)

    ax.set_xlabel('Missing values (%)')
    ax.set_ylabel('Number of columns')
    ax.set_title('Missing Values per Column', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Missingness plot saved to {save_path}")

    return fig


def plot_correlation_matrix(
    X: pd.DataFrame,
    top_n: int = 20,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (12, 10),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Correlation heatmap of the ``top_n`` highest-variance numeric features.

    Args:
        X: Feature matrix
        top_n: Number of features to include
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    numeric = X.select_dtypes(include=[np.number])
    columns = numeric.var().sort_values(ascending=False).head(top_n).index
    corr_matrix = numeric[columns].corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=len(columns) <= 12,
        fmt='.2f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()}, top {len(columns)} by variance)',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def generate_eda_report(
    df: pd.DataFrame,
    X: pd.DataFrame,
    y: pd.Series,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate a complete EDA report with all visualizations.

    Args:
        df: Training data after basic cleaning (before column dropping)
        X: Cleaned feature matrix
        y: Class labels
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    report = {
        "data_shape": df.shape,
        "feature_shape": X.shape,
        "figures": [],
        "class_counts": y.value_counts().sort_index().to_dict(),
        "missing_values": None,
        "correlation_matrix": None
    }

    logger.info("Plotting class distribution...")
    plot_class_distribution(y, save_path=str(output_dir / "01_class_distribution.png"))
    report["figures"].append("01_class_distribution.png")

    logger.info("Summarizing missing values...")
    missing = missing_value_summary(df)
    plot_missingness(missing, save_path=str(output_dir / "02_missingness.png"))
    report["figures"].append("02_missingness.png")
    report["missing_values"] = missing

    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        X, save_path=str(output_dir / "03_correlation_matrix.png")
    )
    report["figures"].append("03_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_missing_value_insights(summary: pd.DataFrame, threshold: float = 90.0) -> None:
    """
    Print how many columns are mostly empty.

    Args:
        summary: DataFrame from missing_value_summary
        threshold: Percentage above which a column counts as mostly empty
    """
    mostly_empty = summary[summary['pct_missing'] >= threshold]
    complete = summary[summary['n_missing'] == 0]

    print("\n" + "=" * 50)
    print("MISSING VALUE INSIGHTS")
    print("=" * 50)
    print(f"Columns analysed: {len(summary)}")
    print(f"Complete columns: {len(complete)}")
    print(f"Columns ≥ {threshold:.0f}% missing: {len(mostly_empty)}")

    if len(mostly_empty):
        print("\nInterpretation:")
        print("  - Mostly-empty columns are per-window summary statistics")
        print("  - They carry values only on window boundary rows")
        print("  - Columns empty in the evaluation data are dropped before modeling")

    print("=" * 50 + "\n")
