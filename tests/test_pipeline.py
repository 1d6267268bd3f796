"""
End-to-end tests for main.py on small synthetic CSV files.
"""

import pytest
import requests
import yaml

import main


@pytest.fixture
def pipeline_config(raw_train, raw_eval, tmp_path):
    """Write both CSVs into a raw-data dir so no download happens."""
    raw_dir = tmp_path / 'data' / 'raw'
    raw_dir.mkdir(parents=True)
    raw_train.to_csv(raw_dir / 'pml-training.csv', index=False)
    raw_eval.to_csv(raw_dir / 'pml-testing.csv', index=False)

    config = {
        'random_state': 42,
        'n_jobs': 1,
        'data': {
            'base_url': 'http://localhost.invalid/',
            'training_file': 'pml-training.csv',
            'evaluation_file': 'pml-testing.csv',
            'raw_path': str(raw_dir),
            'predictions_path': str(tmp_path / 'data' / 'predictions'),
            'answer_files': True,
        },
        'split': {'validation_size': 0.25},
        'cross_validation': {'n_splits': 3},
        'models': {
            'gbm': {'max_iter': 20, 'max_depth': 2},
            'rf': {'n_estimators': 20},
        },
        'tuning': {
            'param_grids': {
                'rf': {'max_features': [2, 27], 'criterion': ['gini'], 'min_samples_leaf': [1]},
                'gbm': {'max_iter': [10, 20], 'max_depth': [2], 'learning_rate': [0.1]},
            }
        },
        'output': {
            'model_dir': str(tmp_path / 'models'),
            'gbm_model_path': str(tmp_path / 'models' / 'gbm_model.joblib'),
            'rf_model_path': str(tmp_path / 'models' / 'rf_model.joblib'),
            'tuned_model_path': str(tmp_path / 'models' / 'tuned_model.joblib'),
            'reports_path': str(tmp_path / 'reports'),
            'figures_path': str(tmp_path / 'reports' / 'figures'),
        },
        'logging': {'level': 'INFO', 'log_to_file': False},
    }

    path = tmp_path / 'config.yaml'
    with open(path, 'w') as f:
        yaml.safe_dump(config, f)
    return path


class TestFullPipeline:
    def test_run_full_pipeline(self, pipeline_config, tmp_path):
        results = main.run_full_pipeline(str(pipeline_config))

        selection = results['selection']
        assert set(selection['models']) == {'gbm', 'rf'}
        assert results['model'].model_type == selection['best_model_type']

        metrics = results['evaluation']['metrics']
        assert metrics['overall']['n_samples'] == 50
        assert metrics['labels'] == ['A', 'B', 'C', 'D', 'E']

        predictions = results['prediction']['predictions']
        assert len(predictions) == 20
        assert predictions['problem_id'].tolist() == list(range(1, 21))

        assert (tmp_path / 'models' / 'cleaner.joblib').exists()
        assert (tmp_path / 'models' / 'tuned_model.joblib').exists()
        assert (tmp_path / 'reports' / 'figures' / 'model_cv_comparison.png').exists()
        assert (tmp_path / 'reports' / 'figures' / 'tuning_results.png').exists()
        assert (tmp_path / 'reports' / 'metrics' / 'evaluation_metrics.json').exists()
        assert (tmp_path / 'data' / 'predictions' / 'answers' / 'problem_id_1.txt').exists()

    def test_evaluation_columns_dropped(self, pipeline_config):
        results = main.run_full_pipeline(str(pipeline_config))
        assert results['preprocessing']['dropped_columns'] == ['kurtosis_roll_belt', 'avg_roll_arm']

    def test_rerun_uses_cached_models(self, pipeline_config, monkeypatch):
        first = main.run_full_pipeline(str(pipeline_config))

        def fail(*args, **kwargs):
            raise AssertionError("cached models should be reused")

        monkeypatch.setattr('wle.model.ActivityClassifier.fit', fail)
        monkeypatch.setattr('wle.tuning.GridSearchCV', fail)
        second = main.run_full_pipeline(str(pipeline_config))

        assert second['model'].training_info == first['model'].training_info


class TestSinglePhase:
    def test_select_phase(self, pipeline_config):
        result = main.run_single_phase('select', str(pipeline_config))

        assert result['best_model_type'] in ('gbm', 'rf')
        assert list(result['comparison'].index)[0] == result['best_model_type']

    def test_unknown_phase(self, pipeline_config):
        with pytest.raises(ValueError, match="Unknown phase"):
            main.run_single_phase('deploy', str(pipeline_config))

    def test_main_returns_error_code(self, pipeline_config, monkeypatch, tmp_path):
        missing = tmp_path / 'gone.csv'
        (tmp_path / 'data' / 'raw' / 'pml-testing.csv').rename(missing)

        def refuse(*args, **kwargs):
            raise requests.ConnectionError("offline")

        monkeypatch.setattr('wle.downloader.requests.get', refuse)
        monkeypatch.setattr('sys.argv', ['main.py', '--config', str(pipeline_config)])

        assert main.main() == 1
