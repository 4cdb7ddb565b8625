"""Build structured questions from assembled blocks.

The builder never raises on bad input: problems are returned as
diagnostics so the caller can decide whether to block submission.
"""

import time
import uuid
from typing import Callable, List, Optional, Sequence, Tuple

from quickparse.models.questions import (
    Diagnostic,
    Option,
    QuestionKind,
    Severity,
    StructuredQuestion,
)
from quickparse.services.block_assembler import QuestionBlock

IdFactory = Callable[[], str]

MIN_OPTIONS = 2


def make_option_id() -> str:
    """Session-unique option identifier: millisecond timestamp plus random suffix."""
    return f"opt_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def _prefix(index: Optional[int]) -> str:
    return f"Q{index + 1}: " if index is not None else ""


def _join_lines(lines: Sequence[str], separator: str = "\n") -> str:
    return separator.join(line for line in lines if line).strip()


def build_question(
    block: QuestionBlock,
    index: Optional[int] = None,
    *,
    multiline_statements: bool = True,
    id_factory: Optional[IdFactory] = None,
) -> Tuple[StructuredQuestion, List[Diagnostic]]:
    """Convert one block into a StructuredQuestion.

    Only structural diagnostics (ignored answer/options) are returned here;
    run ``validate_question`` on the final question for validation errors.
    """
    new_id = id_factory or make_option_id
    statement = _join_lines(block.statement_lines, "\n" if multiline_statements else " ")
    diagnostics: List[Diagnostic] = []

    if block.kind == QuestionKind.SINGLE_CHOICE:
        options = [
            Option(
                id=new_id(),
                text=draft.text,
                is_correct=draft.is_correct,
                explanation=_join_lines(draft.explanation_lines) or None,
            )
            for draft in block.options
        ]
        question = StructuredQuestion(
            statement=statement, kind=QuestionKind.SINGLE_CHOICE, options=options
        )
        if block.has_answer:
            diagnostics.append(Diagnostic(
                severity=Severity.WARNING,
                code="answer_ignored",
                message=f"{_prefix(index)}'Réponse:' line ignored for a multiple-choice question.",
                question_index=index,
                line_number=block.line_number,
            ))
        return question, diagnostics

    answer = _join_lines(block.answer_lines)
    question = StructuredQuestion(
        statement=statement,
        kind=QuestionKind.SHORT_ANSWER,
        reference_answer=answer or None,
    )
    if block.options:
        diagnostics.append(Diagnostic(
            severity=Severity.WARNING,
            code="options_ignored",
            message=(
                f"{_prefix(index)}{len(block.options)} option line(s) ignored "
                f"for a short-answer question."
            ),
            question_index=index,
            line_number=block.options[0].line_number,
        ))
    return question, diagnostics


def validate_question(
    question: StructuredQuestion,
    index: Optional[int] = None,
    line_number: Optional[int] = None,
) -> List[Diagnostic]:
    """Pre-submit checks for one question.

    Errors: missing statement, fewer than two non-empty options, missing
    reference answer. Warning: no option marked correct.
    """
    prefix = _prefix(index)
    diagnostics: List[Diagnostic] = []

    if not question.statement.strip():
        diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="missing_statement",
            message=f"{prefix}Missing statement: the question text is empty.",
            question_index=index,
            line_number=line_number,
        ))

    if question.kind == QuestionKind.SINGLE_CHOICE:
        filled = [o for o in question.options if o.text.strip()]
        if len(filled) < MIN_OPTIONS:
            diagnostics.append(Diagnostic(
                severity=Severity.ERROR,
                code="insufficient_options",
                message=(
                    f"{prefix}Insufficient options: fewer than {MIN_OPTIONS} options "
                    f"detected (found {len(filled)})."
                ),
                question_index=index,
                line_number=line_number,
            ))
        if question.options and not question.correct_option_ids:
            diagnostics.append(Diagnostic(
                severity=Severity.WARNING,
                code="no_correct_option",
                message=f"{prefix}No option is marked correct.",
                question_index=index,
                line_number=line_number,
            ))
    elif not (question.reference_answer or "").strip():
        diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="missing_answer",
            message=f"{prefix}Missing reference answer: add a 'Réponse:' line.",
            question_index=index,
            line_number=line_number,
        ))

    return diagnostics


def reconcile_options(
    existing: Sequence[Option],
    parsed: Sequence[Option],
    index: Optional[int] = None,
) -> Tuple[List[Option], List[Diagnostic]]:
    """Apply parsed options onto the options of a question being edited.

    Option slots are never inserted or deleted: only the overlapping prefix
    is updated by position, so ids (and anything keyed by them) survive.
    Trailing existing options are returned unchanged.

    Returns:
        Tuple of (merged options, diagnostics)
    """
    overlap = min(len(existing), len(parsed))
    merged: List[Option] = []
    for position, current in enumerate(existing):
        if position >= overlap:
            merged.append(current.model_copy())
            continue
        source = parsed[position]
        merged.append(current.model_copy(update={
            "text": source.text if source.text.strip() else current.text,
            "is_correct": source.is_correct,
            "explanation": source.explanation,
        }))

    diagnostics: List[Diagnostic] = []
    if len(existing) != len(parsed):
        diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="option_count_mismatch",
            message=(
                f"{_prefix(index)}The pasted text has {len(parsed)} option(s) but the question "
                f"has {len(existing)}; only the first {overlap} were updated. Add or remove "
                f"option slots, then parse again."
            ),
            question_index=index,
        ))
    return merged, diagnostics


def reconcile_questions(
    existing: Sequence[StructuredQuestion],
    parsed: Sequence[StructuredQuestion],
) -> Tuple[List[StructuredQuestion], List[Diagnostic]]:
    """Apply parsed sub-questions onto the sub-questions of a group being edited.

    Sub-questions are matched by position; none are added or removed. A
    parsed question with an empty statement keeps the existing statement.
    """
    diagnostics: List[Diagnostic] = []
    merged: List[StructuredQuestion] = []

    for position, current in enumerate(existing):
        if position >= len(parsed):
            merged.append(current.model_copy(deep=True))
            continue
        source = parsed[position]
        if source.kind != current.kind:
            diagnostics.append(Diagnostic(
                severity=Severity.ERROR,
                code="kind_mismatch",
                message=(
                    f"{_prefix(position)}Pasted sub-question is {source.kind.value} but the "
                    f"existing one is {current.kind.value}; it was left unchanged."
                ),
                question_index=position,
            ))
            merged.append(current.model_copy(deep=True))
            continue

        statement = source.statement or current.statement
        if current.kind == QuestionKind.SINGLE_CHOICE:
            options, option_diagnostics = reconcile_options(current.options, source.options, position)
            diagnostics.extend(option_diagnostics)
            merged.append(current.model_copy(update={"statement": statement, "options": options}))
        else:
            merged.append(current.model_copy(update={
                "statement": statement,
                "reference_answer": source.reference_answer,
            }))

    if len(parsed) != len(existing):
        diagnostics.append(Diagnostic(
            severity=Severity.ERROR,
            code="question_count_mismatch",
            message=(
                f"The pasted text has {len(parsed)} sub-question(s) but the group has "
                f"{len(existing)}; only the first {min(len(parsed), len(existing))} were "
                f"updated. Add or remove sub-questions, then parse again."
            ),
        ))
    return merged, diagnostics


def build_questions(
    blocks: Sequence[QuestionBlock],
    *,
    existing_options: Optional[Sequence[Option]] = None,
    existing_questions: Optional[Sequence[StructuredQuestion]] = None,
    multiline_statements: bool = True,
    id_factory: Optional[IdFactory] = None,
) -> Tuple[List[StructuredQuestion], List[Diagnostic]]:
    """Build, reconcile and validate every block.

    Args:
        blocks: Assembled question blocks
        existing_options: Options of the single question being edited
        existing_questions: Sub-questions of the group being edited
        multiline_statements: Keep statement line breaks (else join with spaces)
        id_factory: Option id generator (defaults to ``make_option_id``)

    Returns:
        Tuple of (questions, diagnostics)
    """
    questions: List[StructuredQuestion] = []
    diagnostics: List[Diagnostic] = []
    line_numbers: List[int] = []

    for index, block in enumerate(blocks):
        question, block_diagnostics = build_question(
            block,
            index,
            multiline_statements=multiline_statements,
            id_factory=id_factory,
        )
        questions.append(question)
        line_numbers.append(block.line_number)
        diagnostics.extend(block_diagnostics)

    if existing_questions:
        questions, merge_diagnostics = reconcile_questions(existing_questions, questions)
        diagnostics.extend(merge_diagnostics)
    elif existing_options and len(questions) == 1:
        if questions[0].kind == QuestionKind.SINGLE_CHOICE:
            options, merge_diagnostics = reconcile_options(existing_options, questions[0].options, 0)
            questions[0] = questions[0].model_copy(update={"options": options})
            diagnostics.extend(merge_diagnostics)
        else:
            diagnostics.append(Diagnostic(
                severity=Severity.ERROR,
                code="kind_mismatch",
                message=(
                    f"The question being edited has {len(existing_options)} option(s) but the "
                    "pasted text is a short-answer question; its options were not "
                    "updated. Paste options or change the question type."
                ),
                question_index=0,
                line_number=line_numbers[0],
            ))

    for index, question in enumerate(questions):
        line_number = line_numbers[index] if index < len(line_numbers) else None
        diagnostics.extend(validate_question(question, index, line_number))

    return questions, diagnostics
