import pytest
from pydantic import ValidationError

from tabledrill.quiz import (
    Dataset, DatasetValidationError, QuizConfiguration, TableDrillError, Scalar, PerLevel, as_level_setting, resolve_level_setting,
)


def test_resolve_level_setting_variants():
    assert resolve_level_setting(None, 2, 7) == 7
    assert resolve_level_setting(Scalar(3), 2, 0) == 3
    per_level = PerLevel({1: False, 3: True})
    assert resolve_level_setting(per_level, 1, True) is False
    assert resolve_level_setting(per_level, 3, False) is True
    assert resolve_level_setting(per_level, 2, 'fallback') == 'fallback'


def test_as_level_setting_coerces_raw_values():
    assert as_level_setting(None) is None
    assert as_level_setting(True) == Scalar(True)
    assert as_level_setting({'1': 0, '3': 1}) == PerLevel({1: 0, 3: 1})
    setting = PerLevel({2: 1})
    assert as_level_setting(setting) is setting


def test_defaults():
    cfg = QuizConfiguration()
    assert cfg.difficulty_level == 1
    assert cfg.blank_rate() == 0.15
    assert cfg.full_row_blanks_allowed() is False
    assert cfg.min_blanks() == 0
    assert cfg.row_limit == 0


def test_rates_merge_over_defaults():
    cfg = QuizConfiguration(difficulty_level=3, difficulty_rates={3: 0.9})
    assert cfg.blank_rate() == 0.9
    cfg2 = QuizConfiguration(difficulty_level=2, difficulty_rates={3: 0.9})
    assert cfg2.blank_rate() == 0.35


def test_per_level_options_from_json():
    cfg = QuizConfiguration.model_validate_json(
        '{"difficulty_level": 3, "allow_full_row_blanks": {"1": false, "3": true}, "min_blanks_per_row": {"3": 1}}'
    )
    assert cfg.full_row_blanks_allowed() is True
    assert cfg.min_blanks() == 1
    lvl1 = cfg.model_copy(update={'difficulty_level': 1})
    assert lvl1.full_row_blanks_allowed() is False
    assert lvl1.min_blanks() == 0


def test_invalid_values_rejected():
    with pytest.raises(ValidationError):
        QuizConfiguration(difficulty_level=4)
    with pytest.raises(ValidationError):
        QuizConfiguration(difficulty_rates={1: 1.5})
    with pytest.raises(ValidationError):
        QuizConfiguration(row_limit=-1)


def test_configuration_is_immutable():
    cfg = QuizConfiguration()
    with pytest.raises(ValidationError):
        cfg.row_limit = 5


def test_visible_column_count(verb_dataset, grammar_dataset):
    assert QuizConfiguration().visible_column_count(verb_dataset) == 3
    assert QuizConfiguration(column_visibility_mode='full').visible_column_count(verb_dataset) == 4
    assert QuizConfiguration(disable_mode_selection=True).visible_column_count(verb_dataset) == 4
    # no reduced view defined
    assert QuizConfiguration().visible_column_count(grammar_dataset) == 3


def test_dataset_identity_fallbacks(verb_dataset, grammar_dataset):
    assert verb_dataset.identity() == 'irregular-verbs'
    assert grammar_dataset.identity() == 'be / have'
    anon = Dataset(column_headers=['a'], row_headers=['x'], rows=[['1']])
    assert anon.identity().startswith('dataset:')
    assert anon.identity() == Dataset(column_headers=['a'], row_headers=['x'], rows=[['2']]).identity()
    assert QuizConfiguration(dataset_identity='custom').identity_for(verb_dataset) == 'custom'


def test_dataset_shape_validation():
    with pytest.raises(ValidationError) as exc:
        Dataset(column_headers=['a', 'b'], row_headers=['x'], rows=[['1']])
    cause = exc.value.errors()[0]['ctx']['error']
    assert isinstance(cause, DatasetValidationError)
    assert isinstance(cause, TableDrillError)
    assert 'row 0 has 1 cells' in str(cause)
    with pytest.raises(ValidationError):
        Dataset(column_headers=['a'], row_headers=['x', 'y'], rows=[['1']])
