"""
Prediction Module
=================

Handles final prediction generation for the evaluation dataset.

Features:
    - Predicted class and its probability for every evaluation row
    - Export predictions to CSV
    - One answer file per evaluation row
    - Prediction report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional
from datetime import datetime

import numpy as np
import pandas as pd

from .model import ActivityClassifier

logger = logging.getLogger(__name__)


def predict_evaluation_set(
    model: ActivityClassifier,
    X_eval: pd.DataFrame,
    ids: pd.Series
) -> pd.DataFrame:
    """
    Predict the class of every evaluation row.

    Args:
        model: Trained classifier
        X_eval: Cleaned evaluation features
        ids: Row identifiers aligned with X_eval

    Returns:
        DataFrame with id, predicted class and probability of that class
    """
    if len(ids) != len(X_eval):
        raise ValueError(f"Got {len(ids)} ids for {len(X_eval)} evaluation rows")

    probabilities = model.predict_proba(X_eval)
    classes = np.asarray(model.classes_)
    best = probabilities.argmax(axis=1)

    id_name = ids.name or 'id'
    return pd.DataFrame({
        id_name: np.asarray(ids),
        'prediction': classes[best].astype(str),
        'probability': probabilities[np.arange(len(best)), best]
    })


def export_predictions(
    predictions: pd.DataFrame,
    output_path: str,
    include_timestamp: bool = True
) -> str:
    """
    Export predictions to CSV file.

    Args:
        predictions: DataFrame from predict_evaluation_set
        output_path: Directory to save the file
        include_timestamp: Whether to add timestamp to filename

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    if include_timestamp:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"predictions_{timestamp}.csv"
    else:
        filename = "predictions.csv"

    filepath = output_path / filename
    predictions.to_csv(filepath, index=False)

    logger.info(f"Predictions exported to {filepath}")
    return str(filepath)


def write_answer_files(predictions: pd.DataFrame, output_path: str) -> List[str]:
    """
    Write one ``problem_id_<id>.txt`` file per row holding the predicted class.

    Args:
        predictions: DataFrame from predict_evaluation_set (id column first)
        output_path: Directory for the answer files

    Returns:
        Paths of the written files
    """
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    id_column = predictions.columns[0]
    paths = []
    for row_id, label in zip(predictions[id_column], predictions['prediction']):
        filepath = output_path / f"problem_id_{row_id}.txt"
        filepath.write_text(str(label))
        paths.append(str(filepath))

    logger.info(f"Wrote {len(paths)} answer files to {output_path}")
    return paths


def generate_prediction_report(
    predictions: pd.DataFrame,
    model: ActivityClassifier,
    metrics: Optional[Dict[str, Any]] = None,
    output_path: Optional[str] = None
) -> Dict[str, Any]:
    """
    Generate a prediction report.

    Args:
        predictions: DataFrame from predict_evaluation_set
        model: Model that produced the predictions
        metrics: Validation metrics (optional)
        output_path: Path to save the report (optional)

    Returns:
        Report dictionary
    """
    id_column = predictions.columns[0]

    report = {
        'generated_at': datetime.now().isoformat(),
        'model': {
            'type': model.model_type,
            'name': model.name,
            'hyperparameters': {k: (v.item() if hasattr(v, 'item') else v)
                                for k, v in model.get_params().items()},
            'cv_accuracy': model.training_info.get('cv_mean_accuracy')
        },
        'predictions': {
            str(row_id): {'prediction': label, 'probability': float(prob)}
            for row_id, label, prob in zip(
                predictions[id_column], predictions['prediction'], predictions['probability']
            )
        },
        'summary': {
            'n_predictions': int(len(predictions)),
            'class_counts': predictions['prediction'].value_counts().sort_index().to_dict(),
            'mean_probability': float(predictions['probability'].mean()) if len(predictions) else None
        }
    }

    if metrics and 'overall' in metrics:
        report['validation'] = {
            'accuracy': metrics['overall']['accuracy'],
            'out_of_sample_error': metrics['overall']['out_of_sample_error']
        }

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w') as f:
            json.dump(report, f, indent=2, default=str)
        logger.info(f"Prediction report saved to {output_path}")

    return report


def run_final_prediction(
    model: ActivityClassifier,
    X_eval: pd.DataFrame,
    ids: pd.Series,
    metrics: Optional[Dict[str, Any]] = None,
    output_dir: str = "data/predictions/",
    answer_files: bool = False
) -> Dict[str, Any]:
    """
    Execute the complete final prediction workflow.

    Args:
        model: Final trained model
        X_eval: Cleaned evaluation features
        ids: Evaluation row identifiers
        metrics: Validation metrics (optional)
        output_dir: Directory for output files
        answer_files: Also write one answer file per row

    Returns:
        Dictionary containing predictions and file paths
    """
    logger.info("=" * 60)
    logger.info("STARTING FINAL PREDICTION")
    logger.info("=" * 60)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Predicting {len(X_eval)} evaluation rows with {model.name}...")
    predictions = predict_evaluation_set(model, X_eval, ids)

    csv_path = export_predictions(predictions, str(output_dir))

    answer_paths = []
    if answer_files:
        answer_paths = write_answer_files(predictions, str(output_dir / "answers"))

    report_path = output_dir / "prediction_report.json"
    report = generate_prediction_report(
        predictions, model, metrics, output_path=str(report_path)
    )

    result = {
        'predictions': predictions,
        'csv_path': csv_path,
        'answer_files': answer_paths,
        'report_path': str(report_path),
        'report': report
    }

    logger.info("=" * 60)
    logger.info("PREDICTION COMPLETE")
    logger.info(f"  Predictions: {''.join(predictions['prediction'])}")
    logger.info(f"  Output: {csv_path}")
    logger.info("=" * 60)

    return result


def print_prediction_results(result: Dict[str, Any]) -> None:
    """
    Print formatted prediction results to console.

    Args:
        result: Result dictionary from run_final_prediction
    """
    predictions = result['predictions']
    id_column = predictions.columns[0]

    print("\n" + "=" * 50)
    print("PREDICTION RESULTS - EVALUATION DATASET")
    print("=" * 50)
    print(f"\n{id_column:<15} {'Prediction':<12} {'Probability':<12}")
    print("-" * 50)

    for _, row in predictions.iterrows():
        print(f"{str(row[id_column]):<15} {row['prediction']:<12} {row['probability']:<12.4f}")

    print("-" * 50)
    print(f"\nPredictions exported to: {result['csv_path']}")
    print(f"Full report saved to: {result['report_path']}")
    if result.get('answer_files'):
        print(f"Answer files written: {len(result['answer_files'])}")
    print("=" * 50 + "\n")
