"""
Model Training Module
=====================

Generic wrapper around the two candidate ensemble classifiers.

Features:
    - Gradient-boosted trees (HistGradientBoostingClassifier) or a random
      forest (RandomForestClassifier) behind one interface
    - Stratified k-fold cross-validated accuracy on every fit
    - Model persistence (save/load) and on-disk caching of trained models
    - Training progress logging
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
from sklearn.base import ClassifierMixin
from sklearn.ensemble import HistGradientBoostingClassifier, RandomForestClassifier
from sklearn.model_selection import StratifiedKFold, cross_val_score

logger = logging.getLogger(__name__)

MODEL_TYPES = {
    'gbm': HistGradientBoostingClassifier,
    'rf': RandomForestClassifier,
}

MODEL_NAMES = {
    'gbm': 'Gradient Boosted Trees',
    'rf': 'Random Forest',
}

# Fixed defaults used for the model-selection round.
DEFAULT_PARAMS = {
    'gbm': {
        'max_iter': 150,
        'max_depth': 3,
        'learning_rate': 0.1,
        'min_samples_leaf': 10,
        'early_stopping': False,
    },
    'rf': {
        'n_estimators': 150,
        'max_features': 'sqrt',
        'min_samples_leaf': 1,
    },
}


def build_estimator(
    model_type: str,
    params: Optional[Dict[str, Any]] = None,
    random_state: int = 42,
    n_jobs: int = -1
) -> ClassifierMixin:
    """
    Create an unfitted scikit-learn estimator.

    Args:
        model_type: 'gbm' or 'rf'
        params: Hyperparameters overriding the defaults
        random_state: Random seed for reproducibility
        n_jobs: Parallel jobs for estimators that support them

    Returns:
        Unfitted estimator

    Raises:
        ValueError: If model_type is unknown
    """
    if model_type not in MODEL_TYPES:
        raise ValueError(
            f"Unknown model type: {model_type}. Choose from: {', '.join(MODEL_TYPES)}"
        )

    kwargs = dict(DEFAULT_PARAMS[model_type])
    kwargs.update(params or {})
    kwargs['random_state'] = random_state
    if model_type == 'rf':
        kwargs['n_jobs'] = n_jobs

    return MODEL_TYPES[model_type](**kwargs)


class ActivityClassifier:
    """
    Cross-validated activity-quality classifier.

    Fitting first estimates accuracy with stratified k-fold cross-validation
    and then refits the estimator on all supplied rows.
    """

    def __init__(
        self,
        model_type: str = 'rf',
        params: Optional[Dict[str, Any]] = None,
        cv_folds: int = 5,
        random_state: int = 42,
        n_jobs: int = -1
    ):
        """
        Initialize the classifier.

        Args:
            model_type: 'gbm' or 'rf'
            params: Hyperparameters overriding the defaults
            cv_folds: Number of cross-validation folds
            random_state: Random seed for reproducibility
            n_jobs: Number of parallel jobs (-1 for all cores)
        """
        if model_type not in MODEL_TYPES:
            raise ValueError(
                f"Unknown model type: {model_type}. Choose from: {', '.join(MODEL_TYPES)}"
            )
        if cv_folds < 2:
            raise ValueError(f"cv_folds must be at least 2, got {cv_folds}")

        self.model_type = model_type
        self.params = dict(params or {})
        self.cv_folds = cv_folds
        self.random_state = random_state
        self.n_jobs = n_jobs

        self.model: Optional[ClassifierMixin] = None
        self.feature_names_: Optional[list] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def name(self) -> str:
        return MODEL_NAMES[self.model_type]

    @property
    def classes_(self) -> np.ndarray:
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")
        return self.model.classes_

    @property
    def cv_accuracy(self) -> float:
        """Mean cross-validated accuracy recorded during fit."""
        if 'cv_mean_accuracy' not in self.training_info:
            raise ValueError("No cross-validation results available. Call fit() first.")
        return self.training_info['cv_mean_accuracy']

    def _create_estimator(self) -> ClassifierMixin:
        return build_estimator(self.model_type, self.params, self.random_state, self.n_jobs)

    def _cv_splitter(self) -> StratifiedKFold:
        return StratifiedKFold(n_splits=self.cv_folds, shuffle=True, random_state=self.random_state)

    def cross_validate(self, X: pd.DataFrame, y: pd.Series) -> np.ndarray:
        """
        Estimate accuracy with stratified k-fold cross-validation.

        Args:
            X: Feature matrix
            y: Class labels

        Returns:
            Array of per-fold accuracy scores
        """
        logger.info(f"Running {self.cv_folds}-fold cross-validation for {self.name}...")
        scores = cross_val_score(
            self._create_estimator(), X, y,
            cv=self._cv_splitter(),
            scoring='accuracy'
        )
        logger.info(f"CV accuracy per fold: {np.round(scores, 4).tolist()}")
        return scores

    def fit(self, X: pd.DataFrame, y: pd.Series) -> 'ActivityClassifier':
        """
        Cross-validate, then train the final model on all rows.

        Args:
            X: Feature matrix of shape (n_samples, n_features)
            y: Class labels of shape (n_samples,)

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()

        logger.info("=" * 60)
        logger.info(f"STARTING MODEL TRAINING: {self.name}")
        logger.info("=" * 60)
        logger.info(f"Training data shape: X={X.shape}, y={y.shape}")
        logger.info(f"Hyperparameters: {self.get_params()}")

        scores = self.cross_validate(X, y)

        self.model = self._create_estimator()
        self.model.fit(X, y)
        self.feature_names_ = list(X.columns) if hasattr(X, 'columns') else None

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': int(X.shape[0]),
            'n_features': int(X.shape[1]),
            'classes': [str(c) for c in self.model.classes_],
            'trained_at': end_time.isoformat(),
            'cv_folds': self.cv_folds,
            'cv_scores': scores.tolist(),
            'cv_mean_accuracy': float(np.mean(scores)),
            'cv_std_accuracy': float(np.std(scores)),
            'hyperparameters': self.get_params()
        }
        self._is_fitted = True

        logger.info("=" * 60)
        logger.info(f"MODEL TRAINING COMPLETE in {training_duration:.2f} seconds")
        logger.info(f"  CV accuracy: {self.cv_accuracy:.4f} ± {self.training_info['cv_std_accuracy']:.4f}")
        logger.info("=" * 60)

        return self

    def get_params(self) -> Dict[str, Any]:
        """Effective hyperparameters (defaults merged with overrides)."""
        params = dict(DEFAULT_PARAMS[self.model_type])
        params.update(self.params)
        return params

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict class labels.

        Args:
            X: Feature matrix of shape (n_samples, n_features)

        Returns:
            Predicted labels of shape (n_samples,)
        """
        self._check_input(X)
        return self.model.predict(X)

    def predict_proba(self, X: pd.DataFrame) -> np.ndarray:
        """Class probabilities, columns ordered as ``classes_``."""
        self._check_input(X)
        return self.model.predict_proba(X)

    def _check_input(self, X: pd.DataFrame) -> None:
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        expected = self.training_info.get('n_features')
        if expected is not None and X.shape[1] != expected:
            raise ValueError(f"Expected {expected} features, but got {X.shape[1]}")

    def get_feature_importances(self) -> pd.Series:
        """
        Impurity-based feature importances, highest first.

        Raises:
            ValueError: If the model is untrained or does not expose importances
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        if not hasattr(self.model, 'feature_importances_'):
            raise ValueError(f"{self.name} does not expose feature importances")

        index = self.feature_names_ or [f"feature_{i}" for i in range(len(self.model.feature_importances_))]
        return pd.Series(self.model.feature_importances_, index=index).sort_values(ascending=False)

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'model': self.model,
            'model_type': self.model_type,
            'params': self.params,
            'cv_folds': self.cv_folds,
            'random_state': self.random_state,
            'n_jobs': self.n_jobs,
            'feature_names_': self.feature_names_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'ActivityClassifier':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded ActivityClassifier instance
        """
        state = joblib.load(filepath)

        model = cls(
            model_type=state['model_type'],
            params=state['params'],
            cv_folds=state['cv_folds'],
            random_state=state['random_state'],
            n_jobs=state['n_jobs']
        )
        model.model = state['model']
        model.feature_names_ = state['feature_names_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def load_cached_model(cache_path: Optional[str], model_type: str) -> Optional[ActivityClassifier]:
    """
    Return the cached model at ``cache_path`` if it exists and is of ``model_type``.
    """
    if not cache_path or not Path(cache_path).exists():
        return None

    model = ActivityClassifier.load(cache_path)
    if model.model_type != model_type:
        logger.warning(
            f"Cached model at {cache_path} is '{model.model_type}', expected '{model_type}'; retraining"
        )
        return None

    return model


def train_model(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    model_type: str,
    config: Dict[str, Any],
    cache_path: Optional[str] = None,
    force: bool = False
) -> ActivityClassifier:
    """
    Train a model with its default hyperparameters, reusing a cached copy.

    Args:
        X_train: Training features
        y_train: Training labels
        model_type: 'gbm' or 'rf'
        config: Configuration dictionary
        cache_path: Model cache file (optional)
        force: Ignore an existing cache file

    Returns:
        Trained ActivityClassifier
    """
    if not force:
        cached = load_cached_model(cache_path, model_type)
        if cached is not None:
            logger.info(f"Reusing cached {cached.name} from {cache_path}")
            return cached

    model = ActivityClassifier(
        model_type=model_type,
        params=config.get('models', {}).get(model_type, {}),
        cv_folds=config.get('cross_validation', {}).get('n_splits', 5),
        random_state=config.get('random_state', 42),
        n_jobs=config.get('n_jobs', -1)
    )

    model.fit(X_train, y_train)

    if cache_path:
        model.save(cache_path)

    return model


def print_model_summary(model: ActivityClassifier) -> None:
    """
    Print a summary of the trained model.

    Args:
        model: Trained model instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print(f"Model Type: {model.name} ({type(model.model).__name__})")
    print(f"\nHyperparameters:")
    for key, value in model.get_params().items():
        print(f"  - {key}: {value}")

    if model.training_info:
        info = model.training_info
        print(f"\nTraining Info:")
        print(f"  - Duration: {info.get('training_duration_seconds', 0.0):.2f}s")
        print(f"  - Samples: {info.get('n_samples', 'N/A')}")
        print(f"  - Features: {info.get('n_features', 'N/A')}")
        if 'cv_mean_accuracy' in info:
            print(f"  - CV accuracy ({info['cv_folds']}-fold): "
                  f"{info['cv_mean_accuracy']:.4f} ± {info['cv_std_accuracy']:.4f}")

    print("=" * 50 + "\n")
