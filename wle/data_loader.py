"""
Data Loader Module
==================

Handles configuration loading, CSV ingestion and basic data quality checks.

Functions:
    - load_config: Read the pipeline YAML settings
    - load_data: Read one of the raw sensor CSV files
    - validate_data: Label and duplicate checks before cleaning
    - get_data_summary: Shape, dtype mix and missing-cell counts
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import pandas as pd
import numpy as np
import yaml

logger = logging.getLogger(__name__)


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Read the pipeline settings.

    Args:
        config_path: YAML file to read

    Returns:
        Settings dictionary (empty for an empty file)

    Raises:
        FileNotFoundError: If the YAML file is missing
        yaml.YAMLError: If the YAML cannot be parsed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def load_data(
    file_path: str,
    expected_columns: Optional[int] = None
) -> pd.DataFrame:
    """
    Load a CSV file.

    Args:
        file_path: CSV file to read
        expected_columns: Required column count, if known

    Returns:
        Raw frame, sensor columns left as read

    Raises:
        FileNotFoundError: If the CSV file is missing
        ValueError: If the column count doesn't match
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    # Sensor columns mix numbers with "#DIV/0!" markers; keep them whole
    # and let preprocessing do the coercion.
    df = pd.read_csv(file_path, low_memory=False)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    if expected_columns is not None and df.shape[1] != expected_columns:
        raise ValueError(
            f"Expected {expected_columns} columns, but found {df.shape[1]}. "
            f"Columns: {list(df.columns)}"
        )

    return df


def validate_data(
    df: pd.DataFrame,
    label_column: Optional[str] = None,
    strict: bool = True
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for classification.

    Checks:
        - Frame is not empty
        - Label column is present (when given) and has no missing values
        - No duplicate rows
        - Columns that are entirely missing

    Args:
        df: DataFrame to validate
        label_column: Name of the class label column (optional)
        strict: Raise ValueError instead of returning when issues exist

    Returns:
        (is_valid, report) where report lists every issue found
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "issues": []
    }

    if df.empty:
        report["issues"].append("Dataset is empty")

    if label_column is not None:
        if label_column not in df.columns:
            report["issues"].append(f"Label column '{label_column}' not found")
        else:
            n_missing_labels = int(df[label_column].isnull().sum())
            if n_missing_labels > 0:
                report["issues"].append(f"Label column has {n_missing_labels} missing values")
            report["class_counts"] = df[label_column].value_counts().sort_index().to_dict()

    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        report["issues"].append(f"Duplicate rows found: {duplicates}")

    empty_columns = df.columns[df.isnull().all()].tolist()
    if empty_columns:
        # Expected for the evaluation file; reported, not treated as an error.
        report["empty_columns"] = empty_columns
        logger.info(f"{len(empty_columns)} columns contain no values")

    for issue in report["issues"]:
        logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: Frame to describe

    Returns:
        Dictionary of summary figures
    """
    numeric = df.select_dtypes(include=[np.number])

    return {
        "shape": df.shape,
        "n_numeric_columns": numeric.shape[1],
        "n_other_columns": df.shape[1] - numeric.shape[1],
        "memory_usage_mb": df.memory_usage(deep=True).sum() / 1024 / 1024,
        "missing_cells": int(df.isnull().sum().sum()),
        "missing_pct": float(df.isnull().mean().mean() * 100) if df.size else 0.0
    }


def print_data_summary(df: pd.DataFrame, name: str = "DATASET") -> None:
    """
    Print the dataset summary block.

    Args:
        df: Frame to describe
        name: Heading for the summary
    """
    summary = get_data_summary(df)

    print("\n" + "=" * 60)
    print(f"{name} SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {summary['memory_usage_mb'] * 1024:.2f} KB")
    print(f"Numeric columns: {summary['n_numeric_columns']}")
    print(f"Other columns: {summary['n_other_columns']}")
    print(f"Missing cells: {summary['missing_cells']} ({summary['missing_pct']:.1f}%)")
    print("=" * 60 + "\n")
