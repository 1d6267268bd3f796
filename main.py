#!/usr/bin/env python3
"""
Weight Lifting Exercise Classifier - Main Pipeline
==================================================

Orchestrates the complete ML pipeline that predicts how a barbell lift was
performed (classes A-E) from wearable sensor readings.

Phases:
    1. Download - Fetch the training and evaluation CSVs if missing
    2. Preprocessing - Column cleaning and stratified split
    3. EDA - Exploratory summaries and figures
    4. Model Selection - Cross-validated gradient boosting vs random forest
    5. Tuning - Grid search over three hyperparameters of the winner
    6. Validation - Confusion matrix and accuracy on held-out data
    7. Prediction - Classes for the evaluation dataset

Usage:
    # Run complete pipeline
    python main.py

    # Run specific phase
    python main.py --phase select

    # Ignore cached models
    python main.py --force-retrain
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from wle.downloader import ensure_datasets, DEFAULT_BASE_URL
from wle.data_loader import load_config, load_data, validate_data, print_data_summary
from wle.eda import generate_eda_report, print_missing_value_insights
from wle.preprocessing import preprocess_pipeline, print_preprocessing_summary
from wle.model import train_model, print_model_summary, ActivityClassifier, MODEL_TYPES
from wle.selection import compare_models, select_best_model, plot_cv_comparison, print_model_comparison
from wle.tuning import tune_hyperparameters, tuning_results_table, plot_tuning_results, print_tuning_summary
from wle.evaluation import evaluate_model, print_evaluation_report
from wle.prediction import run_final_prediction, print_prediction_results

PHASES = ['download', 'eda', 'select', 'tune', 'evaluate', 'predict', 'all']


def setup_logging(level: str = "INFO", log_to_file: bool = True) -> None:
    """Configure logging for the pipeline."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        handlers.append(
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        )

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def run_download(config: Dict[str, Any], force: bool = False) -> Dict[str, Path]:
    """
    Execute Phase 1: fetch the datasets if they are not cached.

    Args:
        config: Configuration dictionary
        force: Re-download even if files exist

    Returns:
        Mapping of file name to local path
    """
    print("\n" + "=" * 70)
    print("PHASE 1: DATA ACQUISITION")
    print("=" * 70)

    data_config = config.get('data', {})

    return ensure_datasets(
        base_url=data_config.get('base_url', DEFAULT_BASE_URL),
        filenames=[
            data_config.get('training_file', 'pml-training.csv'),
            data_config.get('evaluation_file', 'pml-testing.csv')
        ],
        data_dir=data_config.get('raw_path', 'data/raw/'),
        force=force,
        timeout=data_config.get('download_timeout', 60)
    )


def run_preprocessing(
    train_df: pd.DataFrame,
    eval_df: pd.DataFrame,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 2: clean both datasets and split the training data.

    Args:
        train_df: Raw training data
        eval_df: Raw evaluation data
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: DATA PREPROCESSING")
    print("=" * 70)

    model_dir = Path(config.get('output', {}).get('model_dir', 'models/'))
    model_dir.mkdir(parents=True, exist_ok=True)

    result = preprocess_pipeline(
        train_df,
        eval_df,
        cleaning_config=config.get('cleaning', {}),
        validation_size=config.get('split', {}).get('validation_size', 0.25),
        random_state=config.get('random_state', 42),
        save_cleaner=str(model_dir / 'cleaner.joblib')
    )

    print_preprocessing_summary(result)

    return result


def run_eda(
    train_df: pd.DataFrame,
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 3: Exploratory Data Analysis.

    Args:
        train_df: Raw training data
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 3: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    cleaner = prep_result['cleaner']

    report = generate_eda_report(
        cleaner.basic_clean(train_df),
        prep_result['X_train'],
        prep_result['y_train'],
        output_dir=output_dir,
        show_plots=False
    )

    print_missing_value_insights(report['missing_values'])

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_model_selection(
    prep_result: Dict[str, Any],
    config: Dict[str, Any],
    force: bool = False
) -> Dict[str, Any]:
    """
    Execute Phase 4: train both candidates and compare CV accuracy.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary
        force: Retrain even if cached models exist

    Returns:
        Dictionary with the trained models, comparison table and winner
    """
    print("\n" + "=" * 70)
    print("PHASE 4: MODEL SELECTION")
    print("=" * 70)

    output_config = config.get('output', {})

    models = {}
    for model_type in MODEL_TYPES:
        models[model_type] = train_model(
            prep_result['X_train'],
            prep_result['y_train'],
            model_type,
            config,
            cache_path=output_config.get(f'{model_type}_model_path', f'models/{model_type}_model.joblib'),
            force=force
        )
        print_model_summary(models[model_type])

    comparison = compare_models(models)
    print_model_comparison(comparison)

    figures_dir = Path(output_config.get('figures_path', 'reports/figures/'))
    figures_dir.mkdir(parents=True, exist_ok=True)
    plot_cv_comparison(models, save_path=str(figures_dir / "model_cv_comparison.png"))

    return {
        'models': models,
        'comparison': comparison,
        'best_model_type': select_best_model(comparison)
    }


def run_tuning(
    prep_result: Dict[str, Any],
    model_type: str,
    config: Dict[str, Any],
    force: bool = False
) -> ActivityClassifier:
    """
    Execute Phase 5: grid search over the selected model type.

    Args:
        prep_result: Preprocessing result dictionary
        model_type: Winner of the model selection phase
        config: Configuration dictionary
        force: Retrain even if a cached tuned model exists

    Returns:
        Tuned model
    """
    print("\n" + "=" * 70)
    print("PHASE 5: HYPERPARAMETER TUNING")
    print("=" * 70)

    output_config = config.get('output', {})
    param_grid = config.get('tuning', {}).get('param_grids', {}).get(model_type)

    model = tune_hyperparameters(
        prep_result['X_train'],
        prep_result['y_train'],
        model_type,
        param_grid=param_grid,
        base_params=config.get('models', {}).get(model_type, {}),
        cv_folds=config.get('cross_validation', {}).get('n_splits', 5),
        random_state=config.get('random_state', 42),
        n_jobs=config.get('n_jobs', -1),
        cache_path=output_config.get('tuned_model_path', 'models/tuned_model.joblib'),
        force=force
    )

    print_tuning_summary(model)

    figures_dir = Path(output_config.get('figures_path', 'reports/figures/'))
    figures_dir.mkdir(parents=True, exist_ok=True)
    plot_tuning_results(
        tuning_results_table(model),
        save_path=str(figures_dir / "tuning_results.png")
    )

    return model


def run_evaluation(
    model: ActivityClassifier,
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 6: validate against the held-out partition.

    Args:
        model: Final model
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 6: MODEL VALIDATION")
    print("=" * 70)

    y_pred = model.predict(prep_result['X_valid'])

    result = evaluate_model(
        prep_result['y_valid'],
        y_pred,
        labels=[str(c) for c in model.classes_],
        output_dir=config.get('output', {}).get('reports_path', 'reports/'),
        show_plots=False
    )

    print_evaluation_report(result['metrics'])

    return result


def run_final_prediction_phase(
    model: ActivityClassifier,
    prep_result: Dict[str, Any],
    config: Dict[str, Any],
    eval_result: Dict[str, Any] = None
) -> Dict[str, Any]:
    """
    Execute Phase 7: predict the evaluation dataset.

    Args:
        model: Final model
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary
        eval_result: Validation result with metrics (optional)

    Returns:
        Prediction result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 7: FINAL PREDICTION")
    print("=" * 70)

    data_config = config.get('data', {})

    result = run_final_prediction(
        model=model,
        X_eval=prep_result['X_eval'],
        ids=prep_result['eval_ids'],
        metrics=eval_result['metrics'] if eval_result else None,
        output_dir=data_config.get('predictions_path', 'data/predictions/'),
        answer_files=data_config.get('answer_files', False)
    )

    print_prediction_results(result)

    return result


def load_datasets(config: Dict[str, Any], force_download: bool = False):
    """Download (if needed), load and validate both datasets."""
    paths = run_download(config, force=force_download)

    data_config = config.get('data', {})
    label_column = config.get('cleaning', {}).get('label_column', 'classe')

    print("\n📊 Loading data...")
    train_df = load_data(paths[data_config.get('training_file', 'pml-training.csv')])
    eval_df = load_data(paths[data_config.get('evaluation_file', 'pml-testing.csv')])
    print_data_summary(train_df, name="TRAINING DATA")
    print_data_summary(eval_df, name="EVALUATION DATA")

    is_valid, _ = validate_data(train_df, label_column=label_column, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    return train_df, eval_df


def run_full_pipeline(
    config_path: str = "config/config.yaml",
    force_retrain: bool = False,
    log_level: str = None
) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        config_path: Path to configuration file
        force_retrain: Ignore cached model files
        log_level: Overrides the configured logging level

    Returns:
        Dictionary containing all phase results
    """
    config = load_config(config_path)
    log_config = config.get('logging', {})
    setup_logging(log_level or log_config.get('level', 'INFO'), log_config.get('log_to_file', True))

    print("\n" + "=" * 70)
    print("WEIGHT LIFTING EXERCISE CLASSIFICATION PIPELINE")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    train_df, eval_df = load_datasets(config)

    results = {'config': config}

    results['preprocessing'] = run_preprocessing(train_df, eval_df, config)
    results['eda'] = run_eda(train_df, results['preprocessing'], config)
    results['selection'] = run_model_selection(results['preprocessing'], config, force=force_retrain)

    results['model'] = run_tuning(
        results['preprocessing'],
        results['selection']['best_model_type'],
        config,
        force=force_retrain
    )

    results['evaluation'] = run_evaluation(results['model'], results['preprocessing'], config)

    results['prediction'] = run_final_prediction_phase(
        results['model'], results['preprocessing'], config, results['evaluation']
    )

    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Training data: {train_df.shape[0]} rows × {train_df.shape[1]} columns")
    print(f"  • Selected model: {results['model'].name}")
    print(f"  • CV accuracy: {results['model'].cv_accuracy:.4f}")
    print(f"  • Validation accuracy: {results['evaluation']['metrics']['overall']['accuracy']:.4f}")
    print(f"  • Predictions: {''.join(results['prediction']['predictions']['prediction'])}")
    print(f"  • Output: {results['prediction']['csv_path']}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    config_path: str = "config/config.yaml",
    force_retrain: bool = False,
    log_level: str = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline (plus the phases it depends on).

    Args:
        phase: Phase to run ('download', 'eda', 'select', 'tune', 'evaluate', 'predict')
        config_path: Path to configuration file
        force_retrain: Ignore cached model files
        log_level: Overrides the configured logging level

    Returns:
        Phase result dictionary
    """
    if phase == 'predict':
        return run_full_pipeline(config_path, force_retrain, log_level)

    config = load_config(config_path)
    log_config = config.get('logging', {})
    setup_logging(log_level or log_config.get('level', 'INFO'), log_config.get('log_to_file', True))

    if phase == 'download':
        return {'paths': run_download(config, force=force_retrain)}

    if phase not in PHASES:
        raise ValueError(f"Unknown phase: {phase}. Choose from: {', '.join(PHASES)}")

    train_df, eval_df = load_datasets(config)
    prep_result = run_preprocessing(train_df, eval_df, config)

    if phase == 'eda':
        return run_eda(train_df, prep_result, config)

    selection = run_model_selection(prep_result, config, force=force_retrain)
    if phase == 'select':
        return selection

    model = run_tuning(prep_result, selection['best_model_type'], config, force=force_retrain)
    if phase == 'tune':
        return {'model': model, 'selection': selection}

    return run_evaluation(model, prep_result, config)


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Weight Lifting Exercise activity-quality classification pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --phase select
  python main.py --config config/custom.yaml --force-retrain
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=PHASES,
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--force-retrain', '-f',
        action='store_true',
        help='Ignore cached models (and re-download data in the download phase)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    log_level = 'DEBUG' if args.verbose else None

    try:
        if args.phase == 'all':
            run_full_pipeline(args.config, args.force_retrain, log_level)
        else:
            run_single_phase(args.phase, args.config, args.force_retrain, log_level)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
