"""
Test Suite for Selection Module
===============================
"""

import pytest
import matplotlib.pyplot as plt

from wle.model import ActivityClassifier
from wle.selection import compare_models, plot_cv_comparison, print_model_comparison, select_best_model


def scored_model(model_type, scores):
    """Classifier carrying CV scores without being trained."""
    model = ActivityClassifier(model_type)
    model.training_info = {'cv_scores': list(scores), 'training_duration_seconds': 1.5}
    return model


class TestCompareModels:
    """Tests for compare_models and select_best_model."""

    def test_sorted_by_mean_accuracy(self):
        models = {
            'gbm': scored_model('gbm', [0.95, 0.96, 0.94]),
            'rf': scored_model('rf', [0.99, 0.98, 0.99]),
        }
        comparison = compare_models(models)

        assert list(comparison.index) == ['rf', 'gbm']
        assert comparison.loc['gbm', 'cv_mean_accuracy'] == pytest.approx(0.95)
        assert comparison.loc['rf', 'cv_min_accuracy'] == pytest.approx(0.98)
        assert comparison.loc['rf', 'cv_folds'] == 3
        assert comparison.loc['rf', 'model'] == 'Random Forest'

    def test_select_best_model(self):
        models = {
            'gbm': scored_model('gbm', [0.97, 0.97]),
            'rf': scored_model('rf', [0.90, 0.92]),
        }
        assert select_best_model(compare_models(models)) == 'gbm'

    def test_tie_goes_to_first(self):
        models = {
            'gbm': scored_model('gbm', [0.9, 0.9]),
            'rf': scored_model('rf', [0.9, 0.9]),
        }
        assert select_best_model(compare_models(models)) == 'gbm'

    def test_no_models(self):
        with pytest.raises(ValueError, match="No models"):
            compare_models({})

    def test_model_without_scores(self):
        with pytest.raises(ValueError, match="no cross-validation scores"):
            compare_models({'rf': ActivityClassifier('rf')})

    def test_with_trained_models(self, class_data, small_config):
        X, y = class_data
        models = {
            model_type: ActivityClassifier(model_type, params=small_config['models'][model_type],
                                           cv_folds=3, n_jobs=1).fit(X, y)
            for model_type in ('gbm', 'rf')
        }
        comparison = compare_models(models)

        assert set(comparison.index) == {'gbm', 'rf'}
        assert select_best_model(comparison) in models


class TestSelectionReport:
    """Tests for the comparison plot and printout."""

    def test_plot_cv_comparison(self, tmp_path):
        models = {
            'gbm': scored_model('gbm', [0.95, 0.96, 0.94]),
            'rf': scored_model('rf', [0.99, 0.98, 0.99]),
        }
        save_path = tmp_path / 'comparison.png'

        fig = plot_cv_comparison(models, save_path=str(save_path))

        assert isinstance(fig, plt.Figure)
        assert save_path.exists()
        plt.close('all')

    def test_print_model_comparison(self, capsys):
        models = {'rf': scored_model('rf', [0.99, 0.98])}
        print_model_comparison(compare_models(models))

        out = capsys.readouterr().out
        assert 'Random Forest' in out
        assert 'Best model' in out
