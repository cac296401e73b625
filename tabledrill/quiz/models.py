import json
import hashlib
from enum import Enum
from typing import List, Optional, Dict, Any, Set, Tuple, Union, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .config import DEFAULT_DIFFICULTY_RATES, as_level_setting, resolve_level_setting

# cell value meaning "not applicable": never blanked, never graded
SENTINEL = '-'
ANSWER_DELIMITER = '/'


# Exceptions
class TableDrillError(Exception):
    pass


class DatasetValidationError(TableDrillError, ValueError):
    """Malformed table. A ValueError so pydantic reports it as a validation error."""


class EvaluationError(TableDrillError):
    pass


# Models
class Dataset(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    column_headers: List[str]
    row_headers: List[str]
    rows: List[List[str]]
    basic_column_count: Optional[int] = Field(None, ge=1, description='Column count of the reduced (basic) view')
    excluded_columns: Set[int] = Field(default_factory=set, description='Columns rendered but never blanked')

    @model_validator(mode='after')
    def check_shape(self):
        if len(self.row_headers) != len(self.rows):
            raise DatasetValidationError(f'expected {len(self.rows)} row headers, got {len(self.row_headers)}')
        width = len(self.column_headers)
        for idx, row in enumerate(self.rows):
            if len(row) != width:
                raise DatasetValidationError(f'row {idx} has {len(row)} cells, expected {width}')
        return self

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        return len(self.column_headers)

    def identity(self) -> str:
        if self.id:
            return self.id
        if self.title:
            return self.title
        j = json.dumps({'columns': self.column_headers, 'rows': self.row_headers}, ensure_ascii=False)
        return 'dataset:' + hashlib.sha256(j.encode()).hexdigest()[:16]

    def contains(self, row: int, col: int) -> bool:
        return 0 <= row < self.row_count and 0 <= col < self.column_count

    def is_quizzable(self, row: int, col: int) -> bool:
        return col not in self.excluded_columns and self.rows[row][col] != SENTINEL


class QuizConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    column_visibility_mode: Literal['basic', 'full'] = 'basic'
    disable_mode_selection: bool = False
    difficulty_level: Literal[1, 2, 3] = 1
    difficulty_rates: Dict[int, float] = Field(default_factory=dict, description='Overrides merged over the default level rates')
    row_limit: int = Field(0, ge=0, description='0 shows every row')
    allow_full_row_blanks: Union[bool, Dict[int, bool]] = False
    min_blanks_per_row: Union[int, Dict[int, int]] = 0
    dataset_identity: Optional[str] = None

    @field_validator('difficulty_rates')
    def check_rates(cls, v):
        for level, rate in v.items():
            if not 0.0 <= rate <= 1.0:
                raise ValueError(f'rate for level {level} must be within [0, 1]')
        return v

    def blank_rate(self) -> float:
        rates = {**DEFAULT_DIFFICULTY_RATES, **self.difficulty_rates}
        return rates[self.difficulty_level]

    def full_row_blanks_allowed(self) -> bool:
        return bool(resolve_level_setting(as_level_setting(self.allow_full_row_blanks), self.difficulty_level, False))

    def min_blanks(self) -> int:
        return max(0, int(resolve_level_setting(as_level_setting(self.min_blanks_per_row), self.difficulty_level, 0)))

    def visible_column_count(self, dataset: Dataset) -> int:
        if self.disable_mode_selection or self.column_visibility_mode == 'full' or not dataset.basic_column_count:
            return dataset.column_count
        return min(dataset.basic_column_count, dataset.column_count)

    def identity_for(self, dataset: Dataset) -> str:
        return self.dataset_identity or dataset.identity()


class RoundState(BaseModel):
    dataset_identity: str
    rows: List[int] = Field(default_factory=list)


class BlankCell(BaseModel):
    row: int = Field(..., ge=0)
    col: int = Field(..., ge=0)


class Submission(BlankCell):
    value: str = ''


class CellKind(str, Enum):
    TEXT = 'text'
    SENTINEL = 'sentinel'
    INPUT = 'input'


class RenderedCell(BaseModel):
    kind: CellKind
    row: int
    col: int
    text: Optional[str] = None


class RenderedRow(BaseModel):
    row_index: int
    label: str
    cells: List[RenderedCell]


class QuizRound(BaseModel):
    columns: List[str]
    rows: List[RenderedRow]
    blanks: List[BlankCell]
    round_state: RoundState
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Outcome(str, Enum):
    PERFECT = 'perfect'
    NEAR_MISS = 'near_miss'
    NONE = 'none'


class CellVerdict(BaseModel):
    row: int
    col: int
    correct: bool
    accepted_display: str
    submitted: str = ''


class GradeResult(BaseModel):
    per_cell: List[CellVerdict] = Field(default_factory=list)
    correct_count: int = 0
    total_count: int = 0
    outcome: Outcome = Outcome.NONE

    def as_mapping(self) -> Dict[Tuple[int, int], CellVerdict]:
        return {(v.row, v.col): v for v in self.per_cell}
