"""Render structured questions back into quick-parse notation.

The output re-parses to the same questions (statement, option order, texts,
correctness, explanations, reference answer). Empty lines inside multi-line
fields are dropped, since a blank line ends a block in grouped mode.
"""

from typing import List, Optional, Sequence, Union

from quickparse.models.questions import QuestionKind, StructuredQuestion
from quickparse.utils.normalizers import TYPE_HINT_LABELS, normalize_newlines, option_label

EXPLANATION_INDENT = "    "


def _field_lines(text: Optional[str]) -> List[str]:
    if not text:
        return []
    lines = [line.strip() for line in normalize_newlines(text).split("\n")]
    return [line for line in lines if line]


def _labelled(label: str, text: Optional[str]) -> List[str]:
    """``label: first line`` followed by the remaining lines."""
    lines = _field_lines(text)
    if not lines:
        return [f"{label}:"]
    return [f"{label}: {lines[0]}", *lines[1:]]


def _format_body(question: StructuredQuestion) -> List[str]:
    if question.kind == QuestionKind.SHORT_ANSWER:
        return _labelled("Réponse", question.reference_answer)

    lines: List[str] = []
    for position, option in enumerate(question.options):
        mark = "x" if option.is_correct else " "
        text = " ".join(_field_lines(option.text))
        lines.append(f"[{mark}] {option_label(position)}) {text}".rstrip())
        for i, explanation_line in enumerate(_field_lines(option.explanation)):
            if i == 0:
                lines.append(f"{EXPLANATION_INDENT}Explication: {explanation_line}")
            else:
                lines.append(f"{EXPLANATION_INDENT}{explanation_line}")
    return lines


def format_single_question(question: StructuredQuestion) -> str:
    """Single-question notation: ``Q: statement`` then options or ``Réponse:``."""
    lines = _labelled("Q", question.statement)
    lines.extend(_format_body(question))
    return "\n".join(lines)


def format_grouped_questions(
    questions: Sequence[StructuredQuestion], case_text: Optional[str] = None
) -> str:
    """Grouped notation: optional ``Case:`` preamble then one ``Qn: (TYPE)`` block each."""
    lines: List[str] = []
    if case_text and case_text.strip():
        lines.append("Case:")
        lines.extend(_field_lines(case_text))
        lines.append("")

    for index, question in enumerate(questions):
        lines.append(f"Q{index + 1}: ({TYPE_HINT_LABELS[question.kind]})")
        lines.extend(_labelled("Énoncé", question.statement))
        lines.extend(_format_body(question))
        lines.append("")

    return "\n".join(lines).rstrip("\n")


def format_question_text(
    question: Union[StructuredQuestion, Sequence[StructuredQuestion]],
    *,
    case_text: Optional[str] = None,
) -> str:
    """Render one question (single notation) or a list (grouped notation)."""
    if isinstance(question, StructuredQuestion):
        return format_single_question(question)
    return format_grouped_questions(list(question), case_text)
