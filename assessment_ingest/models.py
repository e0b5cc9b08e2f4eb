from __future__ import annotations
import uuid
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union


def frozen_map(d=None) -> Mapping:
    # read-only view over a private copy
    return MappingProxyType(dict(d or {}))


class SchemaType(str, Enum):
    FLUENCY_DETAIL = "FLUENCY_DETAIL"
    MATRIX = "MATRIX"
    LEVELS_SUMMARY = "LEVELS_SUMMARY"
    EVOLUTION = "EVOLUTION"
    HISTORY = "HISTORY"
    UNKNOWN = "UNKNOWN"


# =========================
# FLUENCY_DETAIL: one (student, subject) pair
# =========================
@dataclass(frozen=True)
class QuestionAnswer:
    answer: str
    correct: bool


@dataclass(frozen=True)
class FluencyDetailRecord:
    name: str
    subject: str
    level: str
    questions: Mapping[int, QuestionAnswer] = field(default_factory=frozen_map)
    average: Optional[int] = None
    # 1..4 derived from the Language average, "-" when no Language record matches
    tier: Union[int, str, None] = None


# =========================
# MATRIX: one (student, subject) pair, exam-style
# =========================
@dataclass(frozen=True)
class MatrixAnswer:
    status: str  # certo | errado | unknown
    value: str


@dataclass(frozen=True)
class MatrixRecord:
    name: str
    subject: str
    average: float
    level: str
    answers: Mapping[str, MatrixAnswer] = field(default_factory=frozen_map)


@dataclass(frozen=True)
class LevelsSummaryRecord:
    edition: str
    fluent: float = 0.0
    non_fluent: float = 0.0
    phrases: float = 0.0
    words: float = 0.0
    syllables: float = 0.0
    non_reader: float = 0.0
    not_evaluated: float = 0.0
    not_informed: float = 0.0
    total_students: float = 0.0


@dataclass(frozen=True)
class EvolutionRecord:
    edition: str
    subject: str
    participation: float
    correct: float


@dataclass(frozen=True)
class HistoryRecord:
    name: str
    school: str = ""
    # edition column label (dedup-suffixed) -> level or percentage as exported
    results: Mapping[str, str] = field(default_factory=frozen_map)


Record = Union[FluencyDetailRecord, MatrixRecord, LevelsSummaryRecord, EvolutionRecord, HistoryRecord]


def new_report_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class ParsedReport:
    """
    Result of parsing one file.

    `records` element type is resolved by `schema_type`; UNKNOWN reports have
    no records.
    """
    filename: str
    schema_type: SchemaType
    headers: Tuple[str, ...] = ()
    records: Tuple[Record, ...] = ()
    id: str = field(default_factory=new_report_id)

    @property
    def is_recognized(self) -> bool:
        return self.schema_type is not SchemaType.UNKNOWN
