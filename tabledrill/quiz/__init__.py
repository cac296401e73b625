"""
Quiz core: row selection with memory, blank masks and answer grading.
"""
from .config import Scalar, PerLevel, LevelSetting, as_level_setting, resolve_level_setting, DEFAULT_DIFFICULTY_RATES
from .models import (
	SENTINEL, Dataset, QuizConfiguration, RoundState, BlankCell, Submission, CellKind, RenderedCell, RenderedRow,
	QuizRound, Outcome, CellVerdict, GradeResult, TableDrillError, DatasetValidationError, EvaluationError,
)
from .row_selector import RowSelector, RowSelection, SelectionCase, select_rows, sample_without_replacement
from .blank_generator import BlankGenerator, BlankMask, generate_blanks, quizzable_columns
from .answer_evaluator import AnswerEvaluator, evaluate, classify_outcome, display_answer, is_accepted, accepted_segments
from .engine import DrillEngine, start_round, grade_answers, render_rows

__all__ = [
	'Scalar', 'PerLevel', 'LevelSetting', 'as_level_setting', 'resolve_level_setting', 'DEFAULT_DIFFICULTY_RATES',
	'SENTINEL', 'Dataset', 'QuizConfiguration', 'RoundState', 'BlankCell', 'Submission', 'CellKind', 'RenderedCell', 'RenderedRow',
	'QuizRound', 'Outcome', 'CellVerdict', 'GradeResult', 'TableDrillError', 'DatasetValidationError', 'EvaluationError',
	'RowSelector', 'RowSelection', 'SelectionCase', 'select_rows', 'sample_without_replacement',
	'BlankGenerator', 'BlankMask', 'generate_blanks', 'quizzable_columns',
	'AnswerEvaluator', 'evaluate', 'classify_outcome', 'display_answer', 'is_accepted', 'accepted_segments',
	'DrillEngine', 'start_round', 'grade_answers', 'render_rows',
]
