"""Line classifier for the quick-parse question notation.

Every pasted line is mapped to exactly one tagged variant by a single
ordered-rule matcher (first match wins):

1. Header      ``Q1:``, ``Q2: (QCM)``, ``Q3: (QROC) text Réponse: x`` (grouped mode)
2. Option      ``[x] A) text``, ``B. text *``, ``3) text (x)``, ``D: text ✓``
3. Bullet      ``- text`` / ``• text`` (unlabelled option, never correct)
4. Explanation ``Explication: ...`` after an option
5. Indented    continuation of the current option's explanation
6. Answer      ``Réponse: ...`` plus following lines until the block ends
7. Statement   anything before the first option/answer
8. Blank       ends a block in grouped mode, ignored otherwise

Grouped mode also accepts a ``Case:`` / ``Cas:`` preamble before the first
header. The matcher is pure; ``classify_lines`` threads the little context it
needs (options seen, answer open, ...) from one line to the next.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

from quickparse.models.questions import ParseMode, QuestionKind
from quickparse.utils.normalizers import normalize_newlines, normalize_type_hint

HEADER_PATTERN = re.compile(
    r"^Q(?P<number>\d*)\s*:\s*(?:\((?P<hint>QCM|QROC|MCQ|CROQ)\)\s*)?(?P<rest>.*)$",
    re.IGNORECASE,
)
CASE_PATTERN = re.compile(r"^(?:Case|Cas)\s*:\s*(?P<text>.*)$", re.IGNORECASE)
STATEMENT_PREFIX_PATTERN = re.compile(
    r"^(?:Q\d*|Question|Énoncé)\s*:\s*(?P<text>.*)$", re.IGNORECASE
)
GROUPED_STATEMENT_PREFIX_PATTERN = re.compile(
    r"^(?:Question|Énoncé)\s*:\s*(?P<text>.*)$", re.IGNORECASE
)
QUESTION_LABEL_PATTERN = re.compile(r"^Q\s*[.)\-\]]\s+(?P<text>.*)$")
OPTION_PATTERN = re.compile(
    r"^(?:\[(?P<mark>[xX ])\]\s*)?(?P<label>[A-Z]|\d+)\s*[.):\-\]](?:\s+(?P<text>.*))?$"
)
TRAILING_MARKER_PATTERN = re.compile(r"\s*(?:\*+|\(x\)|\[x\]|✓|\bVRAI\b)$", re.IGNORECASE)
BULLET_PATTERN = re.compile(r"^(?:-\s+|•\s*)(?P<text>.*)$")
EXPLANATION_MARKER_PATTERN = re.compile(
    r"^(?:Explication|Justification|Explanation|Pourquoi|Raison)\s*[:\-]\s*(?P<text>.*)$",
    re.IGNORECASE,
)
ANSWER_PATTERN = re.compile(r"^Réponse\s*:\s*(?P<text>.*)$", re.IGNORECASE)
INLINE_ANSWER_PATTERN = re.compile(r"Réponse\s*:", re.IGNORECASE)
INDENT_PATTERN = re.compile(r"^(?: {2,}|\t)")


# =============================================================================
# Tagged line variants
# =============================================================================

@dataclass(frozen=True)
class _Line:
    line_number: int
    raw: str


@dataclass(frozen=True)
class BlankLine(_Line):
    pass


@dataclass(frozen=True)
class HeaderLine(_Line):
    """``Qn:`` header opening a sub-question block."""
    number: Optional[int]
    type_hint: Optional[QuestionKind]
    text: str
    answer: Optional[str]  # inline "Réponse:" on the header line


@dataclass(frozen=True)
class CaseLine(_Line):
    """Clinical case preamble line; ``opens`` is True for the ``Case:`` line itself."""
    text: str
    opens: bool


@dataclass(frozen=True)
class StatementLine(_Line):
    text: str


@dataclass(frozen=True)
class OptionLine(_Line):
    text: str
    is_correct: bool
    label: Optional[str]  # None for bullets


@dataclass(frozen=True)
class ExplanationLine(_Line):
    """Explanation text for the most recent option; ``starts`` when a marker was stripped."""
    text: str
    starts: bool


@dataclass(frozen=True)
class AnswerLine(_Line):
    text: str
    continuation: bool


ClassifiedLine = Union[
    BlankLine, HeaderLine, CaseLine, StatementLine, OptionLine, ExplanationLine, AnswerLine
]


# =============================================================================
# Matchers
# =============================================================================

def _match_header(stripped: str, raw: str, line_number: int) -> Optional[HeaderLine]:
    match = HEADER_PATTERN.match(stripped)
    if not match:
        return None
    rest = match.group("rest").strip()
    answer: Optional[str] = None
    inline = INLINE_ANSWER_PATTERN.search(rest)
    if inline:
        answer = rest[inline.end():].strip()
        rest = rest[:inline.start()].strip()
    number = match.group("number")
    return HeaderLine(
        line_number=line_number,
        raw=raw,
        number=int(number) if number else None,
        type_hint=normalize_type_hint(match.group("hint")),
        text=rest,
        answer=answer,
    )


def _match_option(stripped: str, raw: str, line_number: int) -> Optional[OptionLine]:
    match = OPTION_PATTERN.match(stripped)
    if match:
        text = (match.group("text") or "").strip()
        mark = match.group("mark")
        if mark is not None:
            is_correct = mark.lower() == "x"
        else:
            # Trailing marker form only counts when the leading bracket is absent
            text, is_correct = strip_trailing_marker(text)
        return OptionLine(
            line_number=line_number,
            raw=raw,
            text=text,
            is_correct=is_correct,
            label=match.group("label"),
        )

    bullet = BULLET_PATTERN.match(stripped)
    if bullet:
        return OptionLine(
            line_number=line_number,
            raw=raw,
            text=bullet.group("text").strip(),
            is_correct=False,
            label=None,
        )
    return None


def strip_trailing_marker(text: str) -> Tuple[str, bool]:
    """Remove a trailing correctness marker (``*``, ``(x)``, ``[x]``, ``✓``, ``VRAI``).

    Returns:
        Tuple of (text without marker, whether a marker was found)
    """
    match = TRAILING_MARKER_PATTERN.search(text)
    if not match:
        return text, False
    return text[:match.start()].strip(), True


def classify_line(
    raw: str,
    line_number: int = 1,
    *,
    grouped: bool = False,
    options_seen: bool = False,
    answer_open: bool = False,
    preamble: bool = False,
    case_open: bool = False,
) -> ClassifiedLine:
    """Classify one line of quick-parse notation.

    Args:
        raw: Line as pasted, without the trailing newline
        line_number: One-based position in the pasted text
        grouped: Whether grouped (``Qn:`` header) parsing is active
        options_seen: An option line was already seen in the current block
        answer_open: A ``Réponse:`` line was seen and the block has not ended
        preamble: No header has been seen yet (grouped mode)
        case_open: Inside a ``Case:`` preamble that has not ended

    Returns:
        The tagged variant for this line
    """
    stripped = raw.strip()
    if not stripped:
        return BlankLine(line_number=line_number, raw=raw)

    if grouped:
        header = _match_header(stripped, raw, line_number)
        if header:
            return header
        if preamble:
            if case_open:
                return CaseLine(line_number=line_number, raw=raw, text=stripped, opens=False)
            case = CASE_PATTERN.match(stripped)
            if case:
                return CaseLine(
                    line_number=line_number, raw=raw, text=case.group("text").strip(), opens=True
                )

    if answer_open:
        return AnswerLine(line_number=line_number, raw=raw, text=stripped, continuation=True)

    if not options_seen:
        prefix_pattern = GROUPED_STATEMENT_PREFIX_PATTERN if grouped else STATEMENT_PREFIX_PATTERN
        # "Q. text" reads as a question label, not an option labelled Q
        prefixed = prefix_pattern.match(stripped) or QUESTION_LABEL_PATTERN.match(stripped)
        if prefixed:
            return StatementLine(
                line_number=line_number, raw=raw, text=prefixed.group("text").strip()
            )

    indented = INDENT_PATTERN.match(raw) is not None
    # Indented lines under an option belong to its explanation, never a new option
    if not (options_seen and indented):
        option = _match_option(stripped, raw, line_number)
        if option:
            return option

    answer = ANSWER_PATTERN.match(stripped)
    if answer:
        return AnswerLine(
            line_number=line_number, raw=raw, text=answer.group("text").strip(), continuation=False
        )

    if options_seen:
        marker = EXPLANATION_MARKER_PATTERN.match(stripped)
        if marker:
            return ExplanationLine(
                line_number=line_number, raw=raw, text=marker.group("text").strip(), starts=True
            )
        return ExplanationLine(line_number=line_number, raw=raw, text=stripped, starts=False)

    return StatementLine(line_number=line_number, raw=raw, text=stripped)


def classify_numbered_lines(
    numbered_lines: Iterable[Tuple[int, str]], mode: ParseMode = ParseMode.SINGLE
) -> List[ClassifiedLine]:
    """Classify ``(line_number, raw)`` pairs, threading context between lines."""
    grouped = mode == ParseMode.GROUPED
    options_seen = False
    answer_open = False
    header_seen = False
    case_open = False

    classified: List[ClassifiedLine] = []
    for line_number, raw in numbered_lines:
        line = classify_line(
            raw,
            line_number,
            grouped=grouped,
            options_seen=options_seen,
            answer_open=answer_open,
            preamble=grouped and not header_seen,
            case_open=case_open,
        )

        if isinstance(line, HeaderLine):
            header_seen = True
            case_open = False
            options_seen = False
            answer_open = line.answer is not None
        elif isinstance(line, BlankLine):
            case_open = False
            if grouped:
                options_seen = False
                answer_open = False
        elif isinstance(line, CaseLine):
            case_open = True
        elif isinstance(line, OptionLine):
            options_seen = True
        elif isinstance(line, AnswerLine):
            answer_open = True

        classified.append(line)
    return classified


def classify_lines(text: str, mode: ParseMode = ParseMode.SINGLE) -> List[ClassifiedLine]:
    """Split pasted text into lines and classify each of them."""
    lines = normalize_newlines(text).split("\n")
    return classify_numbered_lines(enumerate(lines, start=1), mode)
