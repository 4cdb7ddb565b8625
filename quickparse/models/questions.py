"""Pydantic models for quick-parse results.

This module defines the structured question records produced by the
quick-parse pipeline, from single options to complete parse results with
their diagnostics.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class QuestionKind(str, Enum):
    """Kind of authored question."""
    SINGLE_CHOICE = "single_choice"
    SHORT_ANSWER = "short_answer"


class ParseMode(str, Enum):
    """Whether pasted text holds one question or a group of sub-questions."""
    SINGLE = "single"
    GROUPED = "grouped"


class GroupKind(str, Enum):
    """Grouping types that own disjoint group identifier ranges."""
    CLINICAL_CASE = "clinical_case"
    SHORT_ANSWER_GROUP = "short_answer_group"
    MCQ_GROUP = "mcq_group"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class Option(BaseModel):
    """A single answer option of a single-choice question."""
    id: str = Field(description="Stable option identifier, e.g. 'opt_1718000000000_a1b2c3'")
    text: str = Field(default="", description="Option text without label or correctness marker")
    is_correct: bool = Field(default=False, description="Whether the option is marked correct")
    explanation: Optional[str] = Field(
        default=None,
        description="Per-option explanation, may span several lines"
    )


class StructuredQuestion(BaseModel):
    """A question rebuilt from the quick-parse notation."""
    statement: str = Field(default="", description="Question statement text")
    kind: QuestionKind = Field(description="single_choice or short_answer")
    options: List[Option] = Field(
        default_factory=list,
        description="Ordered options (single_choice only)"
    )
    reference_answer: Optional[str] = Field(
        default=None,
        description="Expected answer (short_answer only)"
    )

    @property
    def correct_option_ids(self) -> List[str]:
        return [option.id for option in self.options if option.is_correct]


class Diagnostic(BaseModel):
    """A warning or error reported while parsing or validating."""
    severity: Severity
    code: str = Field(description="Machine-readable code, e.g. 'insufficient_options'")
    message: str = Field(description="Human-readable message shown to the author")
    question_index: Optional[int] = Field(
        default=None,
        ge=0,
        description="Zero-based index of the question the diagnostic refers to"
    )
    line_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="One-based line number in the pasted text"
    )


class ParseResult(BaseModel):
    """Complete result of one quick-parse invocation.

    A result is always returned, even for empty or unrecognised input; callers
    inspect ``diagnostics`` (or ``has_errors``) before submitting.
    """
    questions: List[StructuredQuestion] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)
    case_text: Optional[str] = Field(
        default=None,
        description="Clinical case text from a 'Case:' preamble (grouped mode)"
    )
    group_kind: Optional[GroupKind] = Field(default=None)
    group_id: Optional[int] = Field(
        default=None,
        description="Group identifier assigned or validated for grouped authoring"
    )

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0
