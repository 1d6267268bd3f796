"""
Hyperparameter Tuning Module
============================

Exhaustive grid search over three hyperparameters of the selected model.

Each combination is scored with stratified k-fold cross-validation and
the best one is refit on the full working training set.
"""

import logging
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.model_selection import GridSearchCV, StratifiedKFold

from .model import ActivityClassifier, build_estimator, load_cached_model

logger = logging.getLogger(__name__)

DEFAULT_PARAM_GRIDS = {
    # features tried per split, split rule, minimum node size
    'rf': {
        'max_features': [2, 7, 27],
        'criterion': ['gini', 'entropy'],
        'min_samples_leaf': [1, 5],
    },
    'gbm': {
        'max_iter': [50, 100, 150],
        'max_depth': [1, 2, 3],
        'learning_rate': [0.1],
    },
}


def sanitize_param_grid(
    param_grid: Dict[str, List[Any]],
    n_features: int
) -> Dict[str, List[Any]]:
    """
    Validate a grid and clip integer ``max_features`` values to the data.

    Args:
        param_grid: Mapping of parameter name to candidate values
        n_features: Number of columns in the training matrix

    Returns:
        Cleaned copy of the grid

    Raises:
        ValueError: If the grid or any candidate list is empty
    """
    if not param_grid:
        raise ValueError("Parameter grid is empty")

    grid = {}
    for name, values in param_grid.items():
        values = list(values) if isinstance(values, (list, tuple)) else [values]
        if not values:
            raise ValueError(f"No candidate values for parameter '{name}'")

        if name == 'max_features':
            clipped = []
            for value in values:
                if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
                    value = int(min(max(value, 1), n_features))
                if value not in clipped:
                    clipped.append(value)
            if clipped != values:
                logger.warning(f"max_features candidates adjusted to {clipped} for {n_features} features")
            values = clipped

        grid[name] = values

    return grid


def grid_size(param_grid: Dict[str, List[Any]]) -> int:
    """Number of combinations in the Cartesian product of the grid."""
    return int(np.prod([len(values) for values in param_grid.values()]))


def tune_hyperparameters(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    model_type: str,
    param_grid: Optional[Dict[str, List[Any]]] = None,
    base_params: Optional[Dict[str, Any]] = None,
    cv_folds: int = 5,
    random_state: int = 42,
    n_jobs: int = -1,
    cache_path: Optional[str] = None,
    force: bool = False
) -> ActivityClassifier:
    """
    Grid-search the selected model type and refit the best combination.

    Args:
        X_train: Training features
        y_train: Training labels
        model_type: 'gbm' or 'rf'
        param_grid: Candidate values per parameter (defaults per model type)
        base_params: Fixed hyperparameters shared by every candidate
        cv_folds: Number of cross-validation folds
        random_state: Random seed for reproducibility
        n_jobs: Parallel jobs for the estimator
        cache_path: Tuned model cache file (optional)
        force: Ignore an existing cache file

    Returns:
        ActivityClassifier wrapping the refit best estimator
    """
    if not force:
        cached = load_cached_model(cache_path, model_type)
        if cached is not None:
            logger.info(f"Reusing cached tuned {cached.name} from {cache_path}")
            return cached

    if param_grid is None:
        param_grid = DEFAULT_PARAM_GRIDS[model_type]
    grid = sanitize_param_grid(param_grid, X_train.shape[1])

    start_time = datetime.now()

    logger.info("=" * 60)
    logger.info(f"STARTING HYPERPARAMETER SEARCH: {model_type}")
    logger.info("=" * 60)
    logger.info(f"Grid: {grid}")
    logger.info(f"Evaluating {grid_size(grid)} combinations × {cv_folds} folds")

    search = GridSearchCV(
        build_estimator(model_type, base_params, random_state, n_jobs),
        param_grid=grid,
        scoring='accuracy',
        cv=StratifiedKFold(n_splits=cv_folds, shuffle=True, random_state=random_state),
        refit=True
    )
    search.fit(X_train, y_train)

    training_duration = (datetime.now() - start_time).total_seconds()

    best_index = search.best_index_
    fold_scores = [
        float(search.cv_results_[f'split{i}_test_score'][best_index]) for i in range(cv_folds)
    ]

    results = pd.DataFrame(search.cv_results_['params'])
    results['mean_accuracy'] = search.cv_results_['mean_test_score']
    results['std_accuracy'] = search.cv_results_['std_test_score']
    results['rank'] = search.cv_results_['rank_test_score']

    params = dict(base_params or {})
    params.update(search.best_params_)

    model = ActivityClassifier(
        model_type=model_type,
        params=params,
        cv_folds=cv_folds,
        random_state=random_state,
        n_jobs=n_jobs
    )
    model.model = search.best_estimator_
    model.feature_names_ = list(X_train.columns) if hasattr(X_train, 'columns') else None
    model.training_info = {
        'training_duration_seconds': training_duration,
        'n_samples': int(X_train.shape[0]),
        'n_features': int(X_train.shape[1]),
        'classes': [str(c) for c in search.best_estimator_.classes_],
        'trained_at': datetime.now().isoformat(),
        'cv_folds': cv_folds,
        'cv_scores': fold_scores,
        'cv_mean_accuracy': float(search.best_score_),
        'cv_std_accuracy': float(np.std(fold_scores)),
        'hyperparameters': model.get_params(),
        'param_grid': grid,
        'best_params': dict(search.best_params_),
        'grid_results': results.to_dict(orient='records')
    }
    model._is_fitted = True

    logger.info("=" * 60)
    logger.info(f"HYPERPARAMETER SEARCH COMPLETE in {training_duration:.2f} seconds")
    logger.info(f"  Best params: {search.best_params_}")
    logger.info(f"  Best CV accuracy: {search.best_score_:.4f}")
    logger.info("=" * 60)

    if cache_path:
        model.save(cache_path)

    return model


def tuning_results_table(model: ActivityClassifier) -> pd.DataFrame:
    """
    Grid-search results of a tuned model, best combination first.

    Raises:
        ValueError: If the model was not produced by tune_hyperparameters
    """
    records = model.training_info.get('grid_results')
    if not records:
        raise ValueError("Model has no grid-search results")

    return pd.DataFrame(records).sort_values(['rank', 'mean_accuracy'], ascending=[True, False]).reset_index(drop=True)


def plot_tuning_results(
    results: pd.DataFrame,
    x_param: Optional[str] = None,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot CV accuracy against one grid parameter, one line per combination of the rest.

    Args:
        results: DataFrame from tuning_results_table
        x_param: Parameter for the x axis (default: first parameter column)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    param_columns = [c for c in results.columns if c not in ('mean_accuracy', 'std_accuracy', 'rank')]
    if x_param is None:
        x_param = param_columns[0]
    others = [c for c in param_columns if c != x_param]

    data = results.copy()
    data[x_param] = data[x_param].astype(str)
    if others:
        data['setting'] = data[others].astype(str).apply(
            lambda row: ", ".join(f"{k}={v}" for k, v in row.items()), axis=1
        )
    else:
        data['setting'] = 'all'

    fig, ax = plt.subplots(figsize=figsize)
    sns.pointplot(data=data, x=x_param, y='mean_accuracy', hue='setting', ax=ax, markers='o')

    ax.set_xlabel(x_param)
    ax.set_ylabel('Cross-validated accuracy')
    ax.set_title('Hyperparameter Grid Search', fontsize=14, fontweight='bold')
    ax.legend(fontsize=8, loc='lower right')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Tuning results plot saved to {save_path}")

    return fig


def print_tuning_summary(model: ActivityClassifier, top_n: int = 5) -> None:
    """
    Print the best grid-search combinations.

    Args:
        model: Tuned model
        top_n: Number of combinations to show
    """
    results = tuning_results_table(model)

    print("\n" + "=" * 70)
    print(f"HYPERPARAMETER SEARCH - {model.name.upper()}")
    print("=" * 70)
    print(f"Combinations evaluated: {len(results)} ({model.cv_folds}-fold CV each)")
    print(f"\nTop {min(top_n, len(results))} combinations:")
    print("-" * 70)
    print(results.head(top_n).to_string(index=False))
    print("-" * 70)
    print("\nBest parameters:")
    for key, value in model.training_info['best_params'].items():
        print(f"  - {key}: {value}")
    print(f"Best CV accuracy: {model.cv_accuracy:.4f}")
    print("=" * 70 + "\n")
