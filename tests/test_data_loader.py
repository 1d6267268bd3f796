"""
Test Suite for Data Loader Module
=================================
"""

from pathlib import Path

import pytest
import pandas as pd

from wle.data_loader import get_data_summary, load_config, load_data, print_data_summary, validate_data


class TestLoadConfig:
    def test_load(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("random_state: 7\ndata:\n  raw_path: data/raw/\n")

        config = load_config(str(path))

        assert config['random_state'] == 7
        assert config['data']['raw_path'] == 'data/raw/'

    def test_empty_file(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("")
        assert load_config(str(path)) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / 'nope.yaml'))

    def test_project_config(self):
        config = load_config(str(Path(__file__).parent.parent / 'config' / 'config.yaml'))
        assert config['cleaning']['label_column'] == 'classe'
        assert set(config['tuning']['param_grids']) == {'gbm', 'rf'}


class TestLoadData:
    def test_keeps_error_markers_as_text(self, raw_train, tmp_path):
        path = tmp_path / 'train.csv'
        raw_train.to_csv(path, index=False)

        df = load_data(str(path))

        assert df.shape == raw_train.shape
        assert '#DIV/0!' in df['kurtosis_roll_belt'].tolist()

    def test_expected_columns(self, raw_train, tmp_path):
        path = tmp_path / 'train.csv'
        raw_train.to_csv(path, index=False)

        with pytest.raises(ValueError, match="Expected 3 columns"):
            load_data(str(path), expected_columns=3)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_data(str(tmp_path / 'missing.csv'))


class TestValidateData:
    def test_valid_training_frame(self, raw_train):
        is_valid, report = validate_data(raw_train, label_column='classe')

        assert is_valid
        assert report['class_counts'] == {c: 40 for c in 'ABCDE'}

    def test_empty_columns_reported_not_fatal(self, raw_eval):
        is_valid, report = validate_data(raw_eval)

        assert is_valid
        assert report['empty_columns'] == ['kurtosis_roll_belt', 'avg_roll_arm']

    def test_missing_label_column(self, raw_eval):
        with pytest.raises(ValueError, match="Label column"):
            validate_data(raw_eval, label_column='classe')

    def test_non_strict(self, raw_train):
        df = raw_train.copy()
        df.loc[0, 'classe'] = None
        df = pd.concat([df, df.iloc[[5]]])

        is_valid, report = validate_data(df, label_column='classe', strict=False)

        assert not is_valid
        assert len(report['issues']) == 2

    def test_empty_frame(self):
        with pytest.raises(ValueError, match="empty"):
            validate_data(pd.DataFrame())


class TestDataSummary:
    def test_summary(self, raw_eval):
        summary = get_data_summary(raw_eval)

        assert summary['shape'] == raw_eval.shape
        assert summary['missing_cells'] == 40
        assert summary['n_numeric_columns'] + summary['n_other_columns'] == raw_eval.shape[1]

    def test_print(self, raw_eval, capsys):
        print_data_summary(raw_eval, name="EVALUATION")
        assert 'EVALUATION SUMMARY' in capsys.readouterr().out
