from typing import Iterable, List, Mapping, Tuple, Union

from tabledrill.utils import get_logger
from .models import (
    ANSWER_DELIMITER,
    BlankCell,
    CellVerdict,
    Dataset,
    EvaluationError,
    GradeResult,
    Outcome,
)

LOG = get_logger()

Coords = Tuple[int, int]


def accepted_segments(answer: str) -> List[str]:
    segments = [s.strip() for s in answer.split(ANSWER_DELIMITER)]
    return [s for s in segments if s] or ['']


def display_answer(answer: str) -> str:
    # "dreamed/dreamt" -> "dreamed / dreamt"
    return f' {ANSWER_DELIMITER} '.join(accepted_segments(answer))


def is_accepted(answer: str, submitted: str) -> bool:
    given = (submitted or '').strip().casefold()
    return any(given == seg.casefold() for seg in accepted_segments(answer))


def classify_outcome(correct_count: int, total_count: int) -> Outcome:
    if total_count <= 0:
        return Outcome.NONE
    if correct_count == total_count:
        return Outcome.PERFECT
    if total_count >= 2 and correct_count == total_count - 1:
        return Outcome.NEAR_MISS
    return Outcome.NONE


def _coords(cell: Union[BlankCell, Coords]) -> Coords:
    if isinstance(cell, BlankCell):
        return cell.row, cell.col
    row, col = cell
    return int(row), int(col)


class AnswerEvaluator:
    def evaluate(self, dataset: Dataset, blank_cells: Iterable[Union[BlankCell, Coords]], submissions: Mapping[Coords, str]) -> GradeResult:
        verdicts: List[CellVerdict] = []
        seen = set()
        for cell in blank_cells:
            row, col = _coords(cell)
            if (row, col) in seen:
                continue
            seen.add((row, col))
            if not dataset.contains(row, col):
                raise EvaluationError(f'cell ({row}, {col}) is outside the dataset')
            if not dataset.is_quizzable(row, col):
                LOG.debug('grading_skipped_cell', extra={'row': row, 'col': col})
                continue
            answer = dataset.rows[row][col]
            submitted = submissions.get((row, col)) or ''
            verdicts.append(CellVerdict(
                row=row,
                col=col,
                correct=is_accepted(answer, submitted),
                accepted_display=display_answer(answer),
                submitted=submitted,
            ))

        correct_count = sum(1 for v in verdicts if v.correct)
        total_count = len(verdicts)
        return GradeResult(
            per_cell=verdicts,
            correct_count=correct_count,
            total_count=total_count,
            outcome=classify_outcome(correct_count, total_count),
        )


def evaluate(dataset: Dataset, blank_cells: Iterable[Union[BlankCell, Coords]], submissions: Mapping[Coords, str]) -> GradeResult:
    return AnswerEvaluator().evaluate(dataset, blank_cells, submissions)
