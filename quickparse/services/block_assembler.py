"""Group classified lines into question blocks.

In single mode every line belongs to one block. In grouped mode each ``Qn:``
header opens a block that runs until the next header, a blank line, or the
end of input. Grouped text without any header falls back to one block.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from quickparse.models.questions import Diagnostic, ParseMode, QuestionKind, Severity
from quickparse.services.line_classifier import (
    AnswerLine,
    BlankLine,
    CaseLine,
    ClassifiedLine,
    ExplanationLine,
    HeaderLine,
    OptionLine,
    StatementLine,
    classify_numbered_lines,
)


@dataclass
class OptionDraft:
    text: str
    is_correct: bool
    line_number: int
    explanation_lines: List[str] = field(default_factory=list)


@dataclass
class QuestionBlock:
    """One statement plus its options or answer, before ids are assigned."""

    line_number: int
    number: Optional[int] = None
    type_hint: Optional[QuestionKind] = None
    statement_lines: List[str] = field(default_factory=list)
    options: List[OptionDraft] = field(default_factory=list)
    answer_lines: List[str] = field(default_factory=list)
    has_answer: bool = False

    @property
    def kind(self) -> QuestionKind:
        """Declared type hint, else single choice when any option was seen."""
        if self.type_hint is not None:
            return self.type_hint
        if self.options:
            return QuestionKind.SINGLE_CHOICE
        return QuestionKind.SHORT_ANSWER

    @property
    def is_empty(self) -> bool:
        return not (self.statement_lines or self.options or self.has_answer)


@dataclass
class AssemblyResult:
    blocks: List[QuestionBlock] = field(default_factory=list)
    case_text: Optional[str] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)


def _absorb(block: QuestionBlock, line: ClassifiedLine) -> None:
    """Add one non-header, non-blank line to ``block``."""
    if isinstance(line, OptionLine):
        block.options.append(
            OptionDraft(text=line.text, is_correct=line.is_correct, line_number=line.line_number)
        )
    elif isinstance(line, ExplanationLine):
        if block.options:
            if line.text:
                block.options[-1].explanation_lines.append(line.text)
        elif line.text:
            block.statement_lines.append(line.text)
    elif isinstance(line, AnswerLine):
        block.has_answer = True
        if line.text:
            block.answer_lines.append(line.text)
    elif isinstance(line, (StatementLine, CaseLine)):
        if line.text:
            block.statement_lines.append(line.text)


def _open_block(header: HeaderLine) -> QuestionBlock:
    block = QuestionBlock(
        line_number=header.line_number,
        number=header.number,
        type_hint=header.type_hint,
    )
    if header.text:
        block.statement_lines.append(header.text)
    if header.answer is not None:
        block.has_answer = True
        if header.answer:
            block.answer_lines.append(header.answer)
    return block


def _assemble_single(lines: Sequence[ClassifiedLine]) -> QuestionBlock:
    content = [line for line in lines if not isinstance(line, BlankLine)]
    block = QuestionBlock(line_number=content[0].line_number if content else 1)
    for line in content:
        _absorb(block, line)
    return block


def _join_case_lines(case_lines: List[str]) -> Optional[str]:
    text = "\n".join(case_lines).strip()
    return text or None


def assemble_blocks(lines: Sequence[ClassifiedLine], mode: ParseMode = ParseMode.SINGLE) -> AssemblyResult:
    """Group classified lines into question blocks.

    Args:
        lines: Output of ``classify_lines`` for the same ``mode``
        mode: Single question or grouped sub-questions

    Returns:
        AssemblyResult with blocks in encounter order, the clinical case text
        (grouped mode) and structural diagnostics
    """
    result = AssemblyResult()

    if mode == ParseMode.SINGLE:
        block = _assemble_single(lines)
        if not block.is_empty:
            result.blocks.append(block)
        return result

    case_lines = [line.text for line in lines if isinstance(line, CaseLine) and line.text]
    result.case_text = _join_case_lines(case_lines)

    if not any(isinstance(line, HeaderLine) for line in lines):
        result.diagnostics.append(Diagnostic(
            severity=Severity.WARNING,
            code="no_question_headers",
            message="No 'Qn:' header found; the text was parsed as a single question.",
        ))
        remaining = [(line.line_number, line.raw) for line in lines if not isinstance(line, CaseLine)]
        block = _assemble_single(classify_numbered_lines(remaining, ParseMode.SINGLE))
        if not block.is_empty:
            result.blocks.append(block)
        return result

    current: Optional[QuestionBlock] = None
    orphans: List[int] = []
    for line in lines:
        if isinstance(line, HeaderLine):
            current = _open_block(line)
            result.blocks.append(current)
        elif isinstance(line, BlankLine):
            current = None
        elif isinstance(line, CaseLine):
            continue
        elif current is None:
            orphans.append(line.line_number)
        else:
            _absorb(current, line)

    if orphans:
        listed = ", ".join(str(n) for n in orphans[:10])
        if len(orphans) > 10:
            listed += ", ..."
        result.diagnostics.append(Diagnostic(
            severity=Severity.WARNING,
            code="orphan_lines",
            message=(
                f"{len(orphans)} line(s) outside any 'Qn:' block were ignored "
                f"(line {listed}). Start each sub-question with a 'Qn:' header and "
                f"avoid blank lines inside a sub-question."
            ),
            line_number=orphans[0],
        ))

    return result
