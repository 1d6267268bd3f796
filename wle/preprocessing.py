"""
Data Preprocessing Module
=========================

Cleans the raw sensor tables and partitions the training data.

Functions:
    - drop_index_column: Remove the row-number column written by the exporter
    - coerce_numeric_range: Convert a contiguous block of sensor columns to float
    - find_all_missing_columns: Columns without a single value
    - stratified_split: Class-balanced train/validation split
    - preprocess_pipeline: Full cleaning + partitioning workflow
"""

import logging
from typing import Dict, Any, Tuple, Optional, List, Sequence

import pandas as pd
import numpy as np
from sklearn.model_selection import train_test_split
import joblib

logger = logging.getLogger(__name__)

DEFAULT_INDEX_COLUMN = "X"
DEFAULT_LABEL_COLUMN = "classe"
DEFAULT_ID_COLUMN = "problem_id"
DEFAULT_NUMERIC_RANGE = ("roll_belt", "magnet_forearm_z")
DEFAULT_TIMESTAMP_COLUMNS = ("raw_timestamp_part_1", "raw_timestamp_part_2", "cvtd_timestamp")


def drop_index_column(df: pd.DataFrame, column: str = DEFAULT_INDEX_COLUMN) -> pd.DataFrame:
    """Return ``df`` without the index column (no-op if it is absent)."""
    if column in df.columns:
        return df.drop(columns=[column])
    return df


def coerce_numeric_range(df: pd.DataFrame, start: str, end: str) -> pd.DataFrame:
    """
    Convert every column between ``start`` and ``end`` (inclusive) to float.

    Values that cannot be parsed, such as ``#DIV/0!`` or empty strings,
    become NaN.

    Args:
        df: Input frame
        start: First column of the block
        end: Last column of the block

    Returns:
        Copy of ``df`` with the block coerced to float64

    Raises:
        KeyError: If either bound is not a column of ``df``
    """
    for bound in (start, end):
        if bound not in df.columns:
            raise KeyError(f"Column '{bound}' not found; cannot coerce numeric range")

    df = df.copy()
    columns = df.loc[:, start:end].columns
    df[columns] = df[columns].apply(pd.to_numeric, errors='coerce').astype('float64')

    logger.debug(f"Coerced {len(columns)} columns ({start} .. {end}) to float")
    return df


def find_all_missing_columns(df: pd.DataFrame) -> List[str]:
    """Names of the columns that have no non-missing value."""
    return df.columns[df.isnull().all()].tolist()


class SensorDataCleaner:
    """
    Cleaning pipeline shared by the training and evaluation datasets.

    Fitting looks at both frames. Columns that are entirely empty in the
    evaluation data are removed from both, and the remaining text
    predictors are one-hot encoded with the levels seen in training.
    """

    def __init__(
        self,
        index_column: str = DEFAULT_INDEX_COLUMN,
        label_column: str = DEFAULT_LABEL_COLUMN,
        id_column: str = DEFAULT_ID_COLUMN,
        numeric_range: Optional[Sequence[str]] = DEFAULT_NUMERIC_RANGE,
        timestamp_columns: Sequence[str] = DEFAULT_TIMESTAMP_COLUMNS
    ):
        """
        Initialize the cleaner.

        Args:
            index_column: Row-number column to drop
            label_column: Class label column (training data only)
            id_column: Row identifier column (evaluation data only)
            numeric_range: (first, last) column of the sensor block to coerce
            timestamp_columns: Raw timestamp columns to drop
        """
        self.index_column = index_column
        self.label_column = label_column
        self.id_column = id_column
        self.numeric_range = tuple(numeric_range) if numeric_range else None
        self.timestamp_columns = list(timestamp_columns)

        self.dropped_columns: List[str] = []
        self.numeric_columns: List[str] = []
        self.categorical_levels: Dict[str, List[str]] = {}
        self.fill_values: Optional[pd.Series] = None
        self.feature_columns: Optional[List[str]] = None
        self._is_fitted = False

    @classmethod
    def from_config(cls, cleaning_config: Optional[Dict[str, Any]] = None) -> 'SensorDataCleaner':
        """Build a cleaner from the ``cleaning`` section of the config."""
        cfg = cleaning_config or {}
        return cls(
            index_column=cfg.get('index_column', DEFAULT_INDEX_COLUMN),
            label_column=cfg.get('label_column', DEFAULT_LABEL_COLUMN),
            id_column=cfg.get('id_column', DEFAULT_ID_COLUMN),
            numeric_range=cfg.get('numeric_range', DEFAULT_NUMERIC_RANGE),
            timestamp_columns=cfg.get('timestamp_columns', DEFAULT_TIMESTAMP_COLUMNS)
        )

    def basic_clean(self, df: pd.DataFrame) -> pd.DataFrame:
        """Drop the index column, coerce the sensor block and drop timestamps."""
        df = drop_index_column(df, self.index_column)

        if self.numeric_range is not None:
            df = coerce_numeric_range(df, *self.numeric_range)

        present = [col for col in self.timestamp_columns if col in df.columns]
        return df.drop(columns=present)

    def fit(self, train_df: pd.DataFrame, eval_df: pd.DataFrame) -> 'SensorDataCleaner':
        """
        Learn the feature layout from the training and evaluation frames.

        Args:
            train_df: Raw training data (with label column)
            eval_df: Raw evaluation data

        Returns:
            Self for method chaining
        """
        if self.label_column not in train_df.columns:
            raise ValueError(f"Label column '{self.label_column}' not found in training data")

        train = self.basic_clean(train_df)
        evaluation = self.basic_clean(eval_df)

        reserved = {self.label_column, self.id_column}
        self.dropped_columns = [
            col for col in find_all_missing_columns(evaluation) if col not in reserved
        ]
        logger.info(
            f"Dropping {len(self.dropped_columns)} columns with no values in the evaluation data"
        )

        excluded = reserved | set(self.dropped_columns)
        predictors = [col for col in train.columns if col not in excluded]

        self.numeric_columns = train[predictors].select_dtypes(include=[np.number]).columns.tolist()
        categorical = [col for col in predictors if col not in self.numeric_columns]
        self.categorical_levels = {
            col: sorted(train[col].astype(str).unique().tolist()) for col in categorical
        }

        # Medians cover stray gaps; columns empty in training fall back to 0.
        self.fill_values = train[self.numeric_columns].median().fillna(0.0)

        self.feature_columns = list(self.numeric_columns)
        for col, levels in self.categorical_levels.items():
            self.feature_columns.extend(f"{col}_{level}" for level in levels)

        self._is_fitted = True
        logger.info(
            f"Fitted cleaner: {len(self.numeric_columns)} numeric, "
            f"{len(self.feature_columns) - len(self.numeric_columns)} encoded features"
        )
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Produce the model feature matrix for ``df``.

        Args:
            df: Raw training or evaluation data

        Returns:
            DataFrame with exactly ``feature_columns``
        """
        if not self._is_fitted:
            raise ValueError("Cleaner must be fitted before transform. Call fit() first.")

        clean = self.basic_clean(df)

        features = clean[self.numeric_columns].astype('float64').fillna(self.fill_values)

        encoded = {}
        for col, levels in self.categorical_levels.items():
            values = clean[col].astype(str)
            for level in levels:
                encoded[f"{col}_{level}"] = (values == level).astype('float64')

        if encoded:
            features = pd.concat([features, pd.DataFrame(encoded, index=clean.index)], axis=1)

        return features[self.feature_columns]

    def get_labels(self, df: pd.DataFrame) -> pd.Series:
        """Return the class labels of a training frame as strings."""
        if self.label_column not in df.columns:
            raise ValueError(f"Label column '{self.label_column}' not found")
        return df[self.label_column].astype(str)

    def get_ids(self, df: pd.DataFrame) -> pd.Series:
        """Return row identifiers, falling back to a 1-based position."""
        if self.id_column in df.columns:
            return df[self.id_column]
        return pd.Series(np.arange(1, len(df) + 1), index=df.index, name=self.id_column)

    def save(self, filepath: str) -> None:
        """
        Save the cleaner state to disk.

        Args:
            filepath: Path to save the cleaner
        """
        state = {
            'index_column': self.index_column,
            'label_column': self.label_column,
            'id_column': self.id_column,
            'numeric_range': self.numeric_range,
            'timestamp_columns': self.timestamp_columns,
            'dropped_columns': self.dropped_columns,
            'numeric_columns': self.numeric_columns,
            'categorical_levels': self.categorical_levels,
            'fill_values': self.fill_values,
            'feature_columns': self.feature_columns,
            '_is_fitted': self._is_fitted
        }
        joblib.dump(state, filepath)
        logger.info(f"Cleaner saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'SensorDataCleaner':
        """
        Load a cleaner from disk.

        Args:
            filepath: Path to the saved cleaner

        Returns:
            Loaded SensorDataCleaner instance
        """
        state = joblib.load(filepath)

        cleaner = cls(
            index_column=state['index_column'],
            label_column=state['label_column'],
            id_column=state['id_column'],
            numeric_range=state['numeric_range'],
            timestamp_columns=state['timestamp_columns']
        )
        cleaner.dropped_columns = state['dropped_columns']
        cleaner.numeric_columns = state['numeric_columns']
        cleaner.categorical_levels = state['categorical_levels']
        cleaner.fill_values = state['fill_values']
        cleaner.feature_columns = state['feature_columns']
        cleaner._is_fitted = state['_is_fitted']

        logger.info(f"Cleaner loaded from {filepath}")
        return cleaner


def stratified_split(
    X: pd.DataFrame,
    y: pd.Series,
    validation_size: float = 0.25,
    random_state: int = 42
) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series]:
    """
    Split into working-training and validation sets, preserving class ratios.

    Args:
        X: Feature matrix
        y: Class labels
        validation_size: Fraction of rows held out for validation
        random_state: Random seed for reproducibility

    Returns:
        Tuple of (X_train, X_valid, y_train, y_valid)
    """
    X_train, X_valid, y_train, y_valid = train_test_split(
        X, y,
        test_size=validation_size,
        stratify=y,
        random_state=random_state
    )

    logger.info(
        f"Stratified split: {len(X_train)} train samples, {len(X_valid)} validation samples"
    )

    return X_train, X_valid, y_train, y_valid


def preprocess_pipeline(
    train_df: pd.DataFrame,
    eval_df: pd.DataFrame,
    cleaning_config: Optional[Dict[str, Any]] = None,
    validation_size: float = 0.25,
    random_state: int = 42,
    save_cleaner: Optional[str] = None
) -> Dict[str, Any]:
    """
    Complete cleaning and partitioning workflow.

    Args:
        train_df: Raw training data
        eval_df: Raw evaluation data
        cleaning_config: ``cleaning`` section of the config
        validation_size: Fraction of training rows held out
        random_state: Random seed for the split
        save_cleaner: Path to save the fitted cleaner

    Returns:
        Dictionary containing:
            - X_train, X_valid, y_train, y_valid: Split datasets
            - X_eval, eval_ids: Evaluation features and identifiers
            - cleaner: Fitted SensorDataCleaner
            - feature_names: Model feature names
            - dropped_columns: Columns removed for evaluation-set emptiness
    """
    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING")
    logger.info("=" * 60)

    cleaner = SensorDataCleaner.from_config(cleaning_config)
    cleaner.fit(train_df, eval_df)

    X = cleaner.transform(train_df)
    y = cleaner.get_labels(train_df)
    X_eval = cleaner.transform(eval_df)
    eval_ids = cleaner.get_ids(eval_df)

    X_train, X_valid, y_train, y_valid = stratified_split(
        X, y, validation_size=validation_size, random_state=random_state
    )

    if save_cleaner:
        cleaner.save(save_cleaner)

    result = {
        'X_train': X_train,
        'X_valid': X_valid,
        'y_train': y_train,
        'y_valid': y_valid,
        'X_eval': X_eval,
        'eval_ids': eval_ids,
        'cleaner': cleaner,
        'feature_names': list(cleaner.feature_columns),
        'dropped_columns': list(cleaner.dropped_columns)
    }

    logger.info("=" * 60)
    logger.info("PREPROCESSING COMPLETE")
    logger.info(f"  Training samples: {len(X_train)}")
    logger.info(f"  Validation samples: {len(X_valid)}")
    logger.info(f"  Evaluation samples: {len(X_eval)}")
    logger.info(f"  Features per sample: {X_train.shape[1]}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Training samples: {result['X_train'].shape[0]}")
    print(f"Validation samples: {result['X_valid'].shape[0]}")
    print(f"Evaluation samples: {result['X_eval'].shape[0]}")
    print(f"Features per sample: {result['X_train'].shape[1]}")
    print(f"Columns dropped (empty in evaluation data): {len(result['dropped_columns'])}")
    print("\nClass balance (training):")
    counts = result['y_train'].value_counts().sort_index()
    for label, count in counts.items():
        print(f"  {label}: {count} ({count / len(result['y_train']) * 100:.1f}%)")
    print("=" * 50 + "\n")
