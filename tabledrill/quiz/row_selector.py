"""
Row selection with memory.

A limited round prefers rows that were not shown in the previous fresh round
of the same dataset ("hidden" rows). The rows picked are remembered so the
next fresh round can rotate through the rest of the dataset.
"""

import random
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence

from tabledrill.utils import get_logger, log_round_selection
from tabledrill.memory import SelectionMemory

LOG = get_logger()


class SelectionCase(str, Enum):
    ALL = 'all'
    EXACT = 'exact'
    TOP_UP = 'top_up'
    SAMPLE = 'sample'


class RowSelection(NamedTuple):
    selected: List[int]
    new_memory: Optional[List[int]]
    case: SelectionCase
    hidden_count: int


def sample_without_replacement(population: Sequence, k: int, rng=None) -> list:
    """Uniformly pick ``k`` items from ``population`` (partial Fisher-Yates)."""
    rng = rng or random
    pool = list(population)
    k = max(0, min(k, len(pool)))
    for i in range(k):
        j = rng.randrange(i, len(pool))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:k]


def _clean_prior(prior_shown: Iterable[int], total_rows: int) -> List[int]:
    out: List[int] = []
    seen = set()
    for idx in prior_shown or []:
        if isinstance(idx, bool) or not isinstance(idx, int):
            continue
        if 0 <= idx < total_rows and idx not in seen:
            seen.add(idx)
            out.append(idx)
    return out


def select_rows(total_rows: int, desired_count: int, prior_shown: Iterable[int] = (), rng=None) -> RowSelection:
    everything = list(range(total_rows))
    if desired_count <= 0 or desired_count >= total_rows:
        return RowSelection(everything, None, SelectionCase.ALL, total_rows)

    prior = _clean_prior(prior_shown, total_rows)
    prior_set = set(prior)
    hidden = [idx for idx in everything if idx not in prior_set]
    h, v = len(hidden), desired_count

    if h == v:
        chosen, case = list(hidden), SelectionCase.EXACT
    elif h < v:
        chosen, case = hidden + sample_without_replacement(prior, v - h, rng), SelectionCase.TOP_UP
    else:
        chosen, case = sample_without_replacement(hidden, v, rng), SelectionCase.SAMPLE

    selected = sorted(chosen)
    return RowSelection(selected, list(selected), case, h)


class RowSelector:
    def __init__(self, memory: Optional[SelectionMemory] = None, rng=None):
        self.memory = memory if memory is not None else SelectionMemory(store=None)
        self.rng = rng or random.Random()

    def select(self, total_rows: int, desired_count: int, dataset_identity: str, client_id: Optional[str] = None, request_id: Optional[str] = None) -> RowSelection:
        limited = 0 < desired_count < total_rows
        prior = self.memory.load(dataset_identity, total_rows=total_rows, client_id=client_id) if limited else []
        selection = select_rows(total_rows, desired_count, prior, self.rng)
        written = False
        if selection.new_memory is not None:
            written = self.memory.save(dataset_identity, selection.new_memory, client_id=client_id)
        log_round_selection(request_id, dataset_identity, total_rows, len(selection.selected), selection.hidden_count, selection.case.value, memory_written=written)
        return selection
