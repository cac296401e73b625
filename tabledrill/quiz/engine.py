from __future__ import annotations

import time
import random
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from tabledrill.utils import get_logger, log_blank_generation, log_grading
from tabledrill.memory import SelectionMemory
from .models import (
    SENTINEL,
    BlankCell,
    CellKind,
    Dataset,
    GradeResult,
    QuizConfiguration,
    QuizRound,
    RenderedCell,
    RenderedRow,
    RoundState,
    Submission,
)
from .row_selector import RowSelector
from .blank_generator import BlankGenerator, BlankMask
from .answer_evaluator import AnswerEvaluator

LOG = get_logger()


def render_rows(dataset: Dataset, mask: BlankMask) -> List[RenderedRow]:
    """Rendering handoff: literal text, sentinel or input per visible cell."""
    out: List[RenderedRow] = []
    for row in mask.rows:
        cells: List[RenderedCell] = []
        for col in range(mask.column_count):
            text = dataset.rows[row][col]
            if text == SENTINEL:
                cells.append(RenderedCell(kind=CellKind.SENTINEL, row=row, col=col, text=SENTINEL))
            elif mask.is_blank(row, col):
                cells.append(RenderedCell(kind=CellKind.INPUT, row=row, col=col))
            else:
                cells.append(RenderedCell(kind=CellKind.TEXT, row=row, col=col, text=text))
        out.append(RenderedRow(row_index=row, label=dataset.row_headers[row], cells=cells))
    return out


class DrillEngine:
    _instance = None

    def __init__(self, memory: Optional[SelectionMemory] = None, rng: Optional[random.Random] = None):
        self.memory = memory if memory is not None else SelectionMemory.get_instance()
        self.rng = rng or random.Random()
        self.selector = RowSelector(self.memory, rng=self.rng)
        self.blank_generator = BlankGenerator(rng=self.rng)
        self.evaluator = AnswerEvaluator()

    @classmethod
    def get_instance(cls) -> 'DrillEngine':
        if cls._instance is None:
            cls._instance = DrillEngine()
        return cls._instance

    def _reusable_rows(self, dataset: Dataset, identity: str, round_state: Optional[RoundState]) -> Optional[List[int]]:
        if round_state is None or not round_state.rows:
            return None
        if round_state.dataset_identity != identity:
            LOG.warning('round_state_identity_mismatch', extra={'expected': identity, 'got': round_state.dataset_identity})
            return None
        if any(not 0 <= r < dataset.row_count for r in round_state.rows):
            LOG.warning('round_state_out_of_range', extra={'dataset_identity': identity, 'row_count': dataset.row_count})
            return None
        return sorted(set(round_state.rows))

    def start_round(self, dataset: Dataset, config: Optional[QuizConfiguration] = None, round_state: Optional[RoundState] = None, retry_same: bool = False, client_id: Optional[str] = None, request_id: Optional[str] = None) -> QuizRound:
        config = config or QuizConfiguration()
        start = time.time()
        identity = config.identity_for(dataset)

        rows = self._reusable_rows(dataset, identity, round_state) if retry_same else None
        if rows is not None:
            selection_case = 'retry_same'
        else:
            selection = self.selector.select(dataset.row_count, config.row_limit, identity, client_id=client_id, request_id=request_id)
            rows, selection_case = selection.selected, selection.case.value

        column_count = config.visible_column_count(dataset)
        rate = config.blank_rate()
        mask = self.blank_generator.generate(
            dataset,
            rows,
            column_count,
            rate,
            min_blanks_per_row=config.min_blanks(),
            allow_full_row_blanks=config.full_row_blanks_allowed(),
        )
        log_blank_generation(request_id, len(rows), mask.blank_count, mask.attempts, rate)

        duration_ms = int((time.time() - start) * 1000)
        metadata = {
            'processing_time_ms': duration_ms,
            'dataset_identity': identity,
            'selection_case': selection_case,
            'difficulty_level': config.difficulty_level,
            'rate': rate,
            'column_count': column_count,
            'blank_count': mask.blank_count,
            'attempts': mask.attempts,
        }
        return QuizRound(
            columns=dataset.column_headers[:column_count],
            rows=render_rows(dataset, mask),
            blanks=mask.blank_cells(),
            round_state=RoundState(dataset_identity=identity, rows=list(rows)),
            metadata=metadata,
        )

    def grade(self, dataset: Dataset, blanks: Iterable[Union[BlankCell, Tuple[int, int]]], submissions: Iterable[Submission] = (), request_id: Optional[str] = None) -> GradeResult:
        start = time.time()
        answers = {(s.row, s.col): s.value for s in submissions}
        result = self.evaluator.evaluate(dataset, blanks, answers)
        duration_ms = int((time.time() - start) * 1000)
        if result.total_count:
            log_grading(request_id, result.correct_count, result.total_count, result.outcome.value, duration_ms)
        return result


# convenience
def start_round(dataset: Union[Dataset, Dict[str, Any]], config: Union[QuizConfiguration, Dict[str, Any], None] = None, round_state: Union[RoundState, Dict[str, Any], None] = None, retry_same: bool = False, client_id: Optional[str] = None, request_id: Optional[str] = None) -> Dict[str, Any]:
    if isinstance(dataset, dict):
        dataset = Dataset(**dataset)
    if isinstance(config, dict):
        config = QuizConfiguration(**config)
    if isinstance(round_state, dict):
        round_state = RoundState(**round_state)
    engine = DrillEngine.get_instance()
    res = engine.start_round(dataset, config, round_state=round_state, retry_same=retry_same, client_id=client_id, request_id=request_id)
    return res.model_dump(mode='json')


def grade_answers(dataset: Union[Dataset, Dict[str, Any]], blanks: Iterable[Any], submissions: Iterable[Any] = (), request_id: Optional[str] = None) -> Dict[str, Any]:
    if isinstance(dataset, dict):
        dataset = Dataset(**dataset)
    cells = [b if isinstance(b, BlankCell) else BlankCell(**b) for b in blanks]
    subs = [s if isinstance(s, Submission) else Submission(**s) for s in submissions]
    engine = DrillEngine.get_instance()
    res = engine.grade(dataset, cells, subs, request_id=request_id)
    return res.model_dump(mode='json')
