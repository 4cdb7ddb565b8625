"""Pydantic request/response models for the quick-parse HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, Field

from quickparse.models.questions import (
    Diagnostic,
    GroupKind,
    Option,
    ParseMode,
    StructuredQuestion,
)


class ParseRequest(BaseModel):
    """Request body for POST /api/quick-parse."""
    raw_text: str = Field(..., description="Pasted quick-parse notation")
    mode: ParseMode = Field(default=ParseMode.SINGLE)
    existing_options: Optional[List[Option]] = Field(
        default=None,
        description="Options of the question being edited (single mode)"
    )
    existing_questions: Optional[List[StructuredQuestion]] = Field(
        default=None,
        description="Sub-questions of the group being edited (grouped mode)"
    )
    group_kind: Optional[GroupKind] = Field(default=None)
    group_id: Optional[int] = Field(default=None, description="User-supplied group identifier")
    existing_group_ids: List[int] = Field(
        default_factory=list,
        description="Group identifiers already used in the lecture"
    )
    multiline_statements: Optional[bool] = Field(
        default=None,
        description="Keep statement line breaks; defaults to MULTILINE_STATEMENTS"
    )


class FormatRequest(BaseModel):
    """Request body for POST /api/quick-parse/format."""
    questions: List[StructuredQuestion] = Field(..., min_length=1)
    grouped: bool = Field(
        default=False,
        description="Render grouped notation (Qn: headers) even for a single question"
    )
    case_text: Optional[str] = Field(default=None)


class FormatResponse(BaseModel):
    text: str


class ValidateRequest(BaseModel):
    """Request body for POST /api/quick-parse/validate (pre-submit check)."""
    questions: List[StructuredQuestion] = Field(..., min_length=1)


class ValidateResponse(BaseModel):
    valid: bool
    diagnostics: List[Diagnostic] = Field(default_factory=list)


class GroupIdRequest(BaseModel):
    """Request body for POST /api/lectures/{lecture_id}/group-ids."""
    kind: GroupKind
    requested_id: Optional[int] = Field(
        default=None,
        description="Explicit identifier chosen by the author; validated against the kind's range"
    )


class GroupIdResponse(BaseModel):
    group_id: int
    kind: GroupKind
    range_floor: int
    range_ceiling: int
