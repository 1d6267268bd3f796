"""
Test Suite for Prediction Module
================================
"""

import json
from pathlib import Path

import pytest
import pandas as pd

from wle.model import ActivityClassifier
from wle.prediction import (
    export_predictions,
    generate_prediction_report,
    predict_evaluation_set,
    print_prediction_results,
    run_final_prediction,
    write_answer_files,
)


@pytest.fixture
def trained_model(class_data):
    X, y = class_data
    return ActivityClassifier('rf', params={'n_estimators': 20}, cv_folds=3, n_jobs=1).fit(X, y)


@pytest.fixture
def eval_set(class_data):
    X, _ = class_data
    X_eval = X.iloc[:20].reset_index(drop=True)
    ids = pd.Series(range(1, 21), name='problem_id')
    return X_eval, ids


class TestPredictEvaluationSet:
    """Tests for predict_evaluation_set."""

    def test_columns_and_values(self, trained_model, eval_set):
        X_eval, ids = eval_set
        predictions = predict_evaluation_set(trained_model, X_eval, ids)

        assert list(predictions.columns) == ['problem_id', 'prediction', 'probability']
        assert predictions['problem_id'].tolist() == list(range(1, 21))
        assert set(predictions['prediction']) <= set('ABCDE')
        assert predictions['probability'].between(0.2, 1.0).all()

    def test_matches_model_predict(self, trained_model, eval_set):
        X_eval, ids = eval_set
        predictions = predict_evaluation_set(trained_model, X_eval, ids)
        assert predictions['prediction'].tolist() == list(trained_model.predict(X_eval))

    def test_unnamed_ids(self, trained_model, eval_set):
        X_eval, _ = eval_set
        predictions = predict_evaluation_set(trained_model, X_eval, pd.Series(range(20)))
        assert predictions.columns[0] == 'id'

    def test_id_length_mismatch(self, trained_model, eval_set):
        X_eval, ids = eval_set
        with pytest.raises(ValueError, match="ids"):
            predict_evaluation_set(trained_model, X_eval, ids.iloc[:5])

    def test_untrained_model(self, eval_set):
        X_eval, ids = eval_set
        with pytest.raises(ValueError, match="must be trained"):
            predict_evaluation_set(ActivityClassifier('rf'), X_eval, ids)


class TestPredictionOutputs:
    """Tests for CSV export, answer files and the report."""

    @pytest.fixture
    def predictions(self):
        return pd.DataFrame({
            'problem_id': [1, 2, 3],
            'prediction': ['B', 'A', 'B'],
            'probability': [0.9, 0.8, 0.7],
        })

    def test_export_without_timestamp(self, predictions, tmp_path):
        path = export_predictions(predictions, str(tmp_path), include_timestamp=False)

        assert Path(path).name == 'predictions.csv'
        pd.testing.assert_frame_equal(pd.read_csv(path), predictions)

    def test_export_with_timestamp(self, predictions, tmp_path):
        path = export_predictions(predictions, str(tmp_path / 'out'))
        assert Path(path).name.startswith('predictions_')
        assert Path(path).exists()

    def test_write_answer_files(self, predictions, tmp_path):
        paths = write_answer_files(predictions, str(tmp_path))

        assert len(paths) == 3
        assert (tmp_path / 'problem_id_1.txt').read_text() == 'B'
        assert (tmp_path / 'problem_id_2.txt').read_text() == 'A'

    def test_generate_report(self, predictions, trained_model, tmp_path):
        path = tmp_path / 'reports' / 'prediction_report.json'
        metrics = {'overall': {'accuracy': 0.99, 'out_of_sample_error': 0.01}}

        report = generate_prediction_report(predictions, trained_model, metrics, output_path=str(path))

        assert report['summary']['n_predictions'] == 3
        assert report['summary']['class_counts'] == {'A': 1, 'B': 2}
        assert report['predictions']['1'] == {'prediction': 'B', 'probability': 0.9}
        assert report['validation']['out_of_sample_error'] == 0.01
        with open(path) as f:
            assert json.load(f)['model']['type'] == 'rf'


class TestRunFinalPrediction:
    """Tests for the prediction workflow."""

    def test_full_workflow(self, trained_model, eval_set, tmp_path, capsys):
        X_eval, ids = eval_set
        result = run_final_prediction(trained_model, X_eval, ids, output_dir=str(tmp_path),
                                      answer_files=True)

        assert len(result['predictions']) == 20
        assert Path(result['csv_path']).exists()
        assert Path(result['report_path']).exists()
        assert len(result['answer_files']) == 20
        assert (tmp_path / 'answers' / 'problem_id_20.txt').exists()
        assert 'validation' not in result['report']

        print_prediction_results(result)
        assert 'Answer files written: 20' in capsys.readouterr().out

    def test_without_answer_files(self, trained_model, eval_set, tmp_path):
        X_eval, ids = eval_set
        result = run_final_prediction(trained_model, X_eval, ids, output_dir=str(tmp_path))

        assert result['answer_files'] == []
        assert not (tmp_path / 'answers').exists()
