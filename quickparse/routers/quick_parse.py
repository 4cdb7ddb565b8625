"""
Quick-parse API endpoints.

Provides the "Analyze" (parse), "Copy" (format) and pre-submit (validate)
operations used by the question creation and edit dialogs.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, Response, status

from quickparse.config import get_settings
from quickparse.middleware.rate_limit import RATE_LIMITS, limiter
from quickparse.models.api import (
    FormatRequest,
    FormatResponse,
    ParseRequest,
    ValidateRequest,
    ValidateResponse,
)
from quickparse.models.questions import ParseResult, Severity
from quickparse.services.formatter import format_question_text
from quickparse.services.question_builder import validate_question
from quickparse.services.quick_parse import parse_question_text

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/quick-parse", tags=["quick-parse"])


@router.post("", response_model=ParseResult, status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["parse"])  # type: ignore[untyped-decorator]
async def parse_text(
    request: Request,
    response: Response,
    body: ParseRequest,
) -> ParseResult:
    """
    Parse pasted notation into structured questions.

    Parsing problems never fail the request: they are returned as
    diagnostics so the dialog can show them and let the author fix the text.

    Returns:
        200: ParseResult (questions, diagnostics, case text, group id)
        413: Pasted text longer than MAX_INPUT_CHARS
        422: Malformed request body
    """
    settings = get_settings()
    if len(body.raw_text) > settings.max_input_chars:
        raise HTTPException(
            status_code=413,
            detail=f"Pasted text exceeds {settings.max_input_chars} characters"
        )

    multiline = (
        body.multiline_statements
        if body.multiline_statements is not None
        else settings.multiline_statements
    )

    result = parse_question_text(
        body.raw_text,
        body.mode,
        body.existing_options,
        existing_questions=body.existing_questions,
        group_kind=body.group_kind,
        group_id=body.group_id,
        existing_group_ids=body.existing_group_ids,
        multiline_statements=multiline,
    )

    error_count = len(result.errors)
    response.headers["X-Question-Count"] = str(len(result.questions))
    response.headers["X-Diagnostic-Count"] = str(len(result.diagnostics))
    response.headers["X-Error-Count"] = str(error_count)

    if error_count:
        logger.info(
            f"Parsed {len(result.questions)} question(s) in {body.mode.value} mode "
            f"with {error_count} error(s): "
            f"{', '.join(sorted({d.code for d in result.errors}))}"
        )

    return result


@router.post("/format", response_model=FormatResponse, status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["parse"])  # type: ignore[untyped-decorator]
async def format_questions(
    request: Request,
    body: FormatRequest,
) -> FormatResponse:
    """
    Render questions back into quick-parse notation (the "Copy" button).

    One question renders as single notation unless ``grouped`` is set;
    several questions always render as grouped notation.
    """
    if len(body.questions) == 1 and not body.grouped:
        return FormatResponse(text=format_question_text(body.questions[0]))
    return FormatResponse(text=format_question_text(body.questions, case_text=body.case_text))


@router.post("/validate", response_model=ValidateResponse, status_code=status.HTTP_200_OK)
@limiter.limit(RATE_LIMITS["parse"])  # type: ignore[untyped-decorator]
async def validate_questions(
    request: Request,
    response: Response,
    body: ValidateRequest,
) -> ValidateResponse:
    """
    Pre-submit check of questions edited in the form.

    Returns:
        200: ``valid`` is false when any error diagnostic is present
    """
    grouped = len(body.questions) > 1
    diagnostics = []
    for index, question in enumerate(body.questions):
        diagnostics.extend(validate_question(question, index if grouped else None))

    response.headers["X-Question-Count"] = str(len(body.questions))
    response.headers["X-Diagnostic-Count"] = str(len(diagnostics))

    valid = not any(d.severity == Severity.ERROR for d in diagnostics)
    return ValidateResponse(valid=valid, diagnostics=diagnostics)
