"""
Blank mask generation.

Every quizzable cell of the selected rows is blanked by an independent coin
flip at the difficulty rate. Rows are then topped up to the minimum blank
count and, unless full-row blanks are allowed, a completely blanked row gets
one cell revealed again. The whole pass is redrawn until the round holds at
least ``BLANK_MIN_ROUND_BLANKS`` blanks or the attempt budget runs out, in
which case the last draw is kept.
"""

import os
import random
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from tenacity import Retrying, stop_after_attempt, retry_if_result

from tabledrill.utils import get_logger
from .models import Dataset, BlankCell
from .row_selector import sample_without_replacement

LOG = get_logger()

BLANK_MAX_ATTEMPTS = int(os.getenv('BLANK_MAX_ATTEMPTS', '100'))
BLANK_MIN_ROUND_BLANKS = int(os.getenv('BLANK_MIN_ROUND_BLANKS', '2'))


@dataclass
class BlankMask:
    rows: List[int]
    column_count: int
    cells: Dict[Tuple[int, int], bool] = field(default_factory=dict)
    attempts: int = 0

    def is_blank(self, row: int, col: int) -> bool:
        return self.cells.get((row, col), False)

    @property
    def blank_count(self) -> int:
        return sum(1 for v in self.cells.values() if v)

    def row_blanks(self, row: int) -> List[int]:
        return [c for c in range(self.column_count) if self.is_blank(row, c)]

    def blank_cells(self) -> List[BlankCell]:
        return [BlankCell(row=r, col=c) for r in self.rows for c in self.row_blanks(r)]


def quizzable_columns(dataset: Dataset, row: int, column_count: int, excluded_columns: Iterable[int] = ()) -> List[int]:
    excluded = set(excluded_columns) | set(dataset.excluded_columns)
    return [c for c in range(column_count) if c not in excluded and dataset.is_quizzable(row, c)]


class BlankGenerator:
    def __init__(self, rng=None, max_attempts: int = BLANK_MAX_ATTEMPTS, min_round_blanks: int = BLANK_MIN_ROUND_BLANKS):
        self.rng = rng or random.Random()
        self.max_attempts = max(1, max_attempts)
        self.min_round_blanks = min_round_blanks

    def _draw_row(self, candidates: Sequence[int], rate: float, min_blanks: int, allow_full_row: bool) -> Set[int]:
        blanks = {c for c in candidates if self.rng.random() < rate}

        if len(blanks) < min_blanks:
            remaining = [c for c in candidates if c not in blanks]
            blanks.update(sample_without_replacement(remaining, min_blanks - len(blanks), self.rng))

        if not allow_full_row and candidates and len(blanks) == len(candidates):
            blanks.discard(self.rng.choice(sorted(blanks)))
        return blanks

    def generate(self, dataset: Dataset, rows: Sequence[int], column_count: int, rate: float, excluded_columns: Iterable[int] = (), min_blanks_per_row: int = 0, allow_full_row_blanks: bool = False) -> BlankMask:
        column_count = min(column_count, dataset.column_count)
        candidates = {row: quizzable_columns(dataset, row, column_count, excluded_columns) for row in rows}
        quizzable_total = sum(len(c) for c in candidates.values())
        attempts = 0

        def _draw_round() -> Dict[int, Set[int]]:
            nonlocal attempts
            attempts += 1
            return {row: self._draw_row(candidates[row], rate, min_blanks_per_row, allow_full_row_blanks) for row in rows}

        def _too_few(assignment: Dict[int, Set[int]]) -> bool:
            return sum(len(b) for b in assignment.values()) < self.min_round_blanks

        # a round that cannot reach the minimum is drawn once
        budget = self.max_attempts if quizzable_total >= self.min_round_blanks else 1
        retrying = Retrying(
            stop=stop_after_attempt(budget),
            retry=retry_if_result(_too_few),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        assignment = retrying(_draw_round)

        cells = {(row, col): col in assignment[row] for row in rows for col in range(column_count)}
        mask = BlankMask(rows=list(rows), column_count=column_count, cells=cells, attempts=attempts)
        if budget > 1 and mask.blank_count < self.min_round_blanks:
            LOG.warning('blank_attempts_exhausted', extra={'attempts': attempts, 'blank_count': mask.blank_count, 'rate': rate})
        return mask


def generate_blanks(dataset: Dataset, rows: Sequence[int], column_count: int, rate: float, excluded_columns: Iterable[int] = (), min_blanks_per_row: int = 0, allow_full_row_blanks: bool = False, rng=None) -> BlankMask:
    gen = BlankGenerator(rng=rng)
    return gen.generate(dataset, rows, column_count, rate, excluded_columns=excluded_columns, min_blanks_per_row=min_blanks_per_row, allow_full_row_blanks=allow_full_row_blanks)
