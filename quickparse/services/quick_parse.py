"""Quick-parse pipeline: pasted notation to structured questions.

Steps:
1. Protect embedded image tags behind placeholders
2. Classify lines
3. Assemble question blocks (single or grouped)
4. Build, reconcile and validate questions
5. Assign the group identifier (grouped mode)
6. Restore image tags

The pipeline is pure: no I/O, no logging, and it always returns a
ParseResult, even for empty or unrecognised input.
"""

from typing import Iterable, List, Optional, Sequence

from quickparse.models.questions import (
    Diagnostic,
    GroupKind,
    Option,
    ParseMode,
    ParseResult,
    Severity,
    StructuredQuestion,
)
from quickparse.services.block_assembler import assemble_blocks
from quickparse.services.group_allocator import (
    GroupRangeExhaustedError,
    InvalidGroupIdError,
    allocate_group_id,
    infer_group_kind,
)
from quickparse.services.line_classifier import classify_lines
from quickparse.services.media import extract_image_placeholders, restore_image_placeholders
from quickparse.services.question_builder import IdFactory, build_questions


def _restore_media(question: StructuredQuestion, image_map: dict) -> StructuredQuestion:
    if not image_map:
        return question
    options = [
        option.model_copy(update={
            "text": restore_image_placeholders(option.text, image_map),
            "explanation": restore_image_placeholders(option.explanation, image_map),
        })
        for option in question.options
    ]
    return question.model_copy(update={
        "statement": restore_image_placeholders(question.statement, image_map),
        "options": options,
        "reference_answer": restore_image_placeholders(question.reference_answer, image_map),
    })


def _assign_group(
    result: ParseResult,
    group_kind: Optional[GroupKind],
    group_id: Optional[int],
    existing_group_ids: Iterable[Optional[int]],
) -> None:
    kind = group_kind or infer_group_kind(result.questions, result.case_text)
    result.group_kind = kind
    try:
        result.group_id = allocate_group_id(kind, existing_group_ids, requested=group_id)
    except InvalidGroupIdError as e:
        result.diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="group_id_out_of_range",
            message=str(e),
        ))
    except GroupRangeExhaustedError as e:
        result.diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="group_range_exhausted",
            message=str(e),
        ))


def parse_question_text(
    raw_text: Optional[str],
    mode: ParseMode = ParseMode.SINGLE,
    existing_options: Optional[Sequence[Option]] = None,
    *,
    existing_questions: Optional[Sequence[StructuredQuestion]] = None,
    group_kind: Optional[GroupKind] = None,
    group_id: Optional[int] = None,
    existing_group_ids: Iterable[Optional[int]] = (),
    multiline_statements: bool = True,
    id_factory: Optional[IdFactory] = None,
) -> ParseResult:
    """Parse pasted quick-parse notation into structured questions.

    Args:
        raw_text: Text pasted by the author
        mode: ``single`` for one question, ``grouped`` for ``Qn:`` sub-questions
        existing_options: Options of the question being edited; only the
            overlapping prefix is updated
        existing_questions: Sub-questions of the group being edited (grouped mode)
        group_kind: Grouping type selected by the author (grouped mode); inferred
            from the content when omitted
        group_id: Group number typed by the author, validated against the kind's range
        existing_group_ids: Group numbers already used in the lecture
        multiline_statements: Keep statement line breaks instead of joining with spaces
        id_factory: Option id generator

    Returns:
        ParseResult with questions in encounter order and every diagnostic
    """
    if not raw_text or not raw_text.strip():
        return ParseResult(diagnostics=[Diagnostic(
            severity=Severity.ERROR,
            code="empty_input",
            message="Nothing to parse: paste a question and its options or answer.",
        )])

    text, image_map = extract_image_placeholders(raw_text)
    assembly = assemble_blocks(classify_lines(text, mode), mode)
    diagnostics: List[Diagnostic] = list(assembly.diagnostics)

    if mode == ParseMode.GROUPED and existing_options:
        diagnostics.append(Diagnostic(
            severity=Severity.WARNING,
            code="existing_options_ignored",
            message=(
                "Existing options only apply to a single question; pass the group's "
                "sub-questions instead."
            ),
        ))

    questions, build_diagnostics = build_questions(
        assembly.blocks,
        existing_options=existing_options if mode == ParseMode.SINGLE else None,
        existing_questions=existing_questions if mode == ParseMode.GROUPED else None,
        multiline_statements=multiline_statements,
        id_factory=id_factory,
    )
    diagnostics.extend(build_diagnostics)

    result = ParseResult(
        questions=[_restore_media(q, image_map) for q in questions],
        diagnostics=diagnostics,
        case_text=restore_image_placeholders(assembly.case_text, image_map),
    )

    if not result.questions:
        result.diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="no_questions",
            message="No question recognised. Check the format (statement, then options or 'Réponse:').",
        ))
        return result

    if mode == ParseMode.GROUPED:
        _assign_group(result, group_kind, group_id, existing_group_ids)

    return result
