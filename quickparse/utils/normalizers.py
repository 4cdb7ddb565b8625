"""Normalize pasted text and header type hints for quick-parse."""

from typing import Optional

from quickparse.models.questions import QuestionKind

TYPE_HINT_MAPPINGS: dict[str, QuestionKind] = {
    "qcm": QuestionKind.SINGLE_CHOICE,
    "mcq": QuestionKind.SINGLE_CHOICE,
    "qroc": QuestionKind.SHORT_ANSWER,
    "croq": QuestionKind.SHORT_ANSWER,
}

TYPE_HINT_LABELS: dict[QuestionKind, str] = {
    QuestionKind.SINGLE_CHOICE: "QCM",
    QuestionKind.SHORT_ANSWER: "QROC",
}


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to '\\n'."""
    if not text:
        return ""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_type_hint(hint: Optional[str]) -> Optional[QuestionKind]:
    """Map a header type hint ('QCM', 'qroc', ...) to a kind. Case-insensitive."""
    if not hint or not hint.strip():
        return None
    return TYPE_HINT_MAPPINGS.get(hint.strip().lower())


def option_label(index: int) -> str:
    """Display label for the option at ``index``: A..Z, then 27, 28, ..."""
    if 0 <= index < 26:
        return chr(ord("A") + index)
    return str(index + 1)
