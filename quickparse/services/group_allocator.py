"""Group identifier allocation for grouped question authoring.

Sub-questions authored together share a numeric group identifier. Each
grouping type owns a disjoint range so that identifiers never collide:

- clinical cases:        1 - 999
- short-answer groups: 1000 - 1999
- MCQ groups:          2000 - 2999

An identifier is either supplied by the author (and must fall inside the
range of the selected kind) or allocated as ``max(existing in range) + 1``,
defaulting to the range floor.
"""

import hashlib
import threading
from typing import Dict, Iterable, Optional, Sequence, Tuple

from quickparse.models.questions import GroupKind, QuestionKind, StructuredQuestion
from quickparse.utils.normalizers import normalize_newlines

GROUP_ID_RANGES: Dict[GroupKind, Tuple[int, int]] = {
    GroupKind.CLINICAL_CASE: (1, 999),
    GroupKind.SHORT_ANSWER_GROUP: (1000, 1999),
    GroupKind.MCQ_GROUP: (2000, 2999),
}

GROUP_KIND_LABELS: Dict[GroupKind, str] = {
    GroupKind.CLINICAL_CASE: "clinical case",
    GroupKind.SHORT_ANSWER_GROUP: "short-answer group",
    GroupKind.MCQ_GROUP: "MCQ group",
}


class GroupAllocationError(Exception):
    """Base error for group identifier allocation."""


class InvalidGroupIdError(GroupAllocationError):
    """Raised when a supplied identifier falls outside its kind's range."""

    def __init__(self, kind: GroupKind, group_id: int):
        floor, ceiling = GROUP_ID_RANGES[kind]
        self.kind = kind
        self.group_id = group_id
        self.owner_kind = kind_for_group_id(group_id)
        message = (
            f"Group number {group_id} is outside the {GROUP_KIND_LABELS[kind]} "
            f"range ({floor}-{ceiling})"
        )
        if self.owner_kind is not None:
            message += f"; it belongs to the {GROUP_KIND_LABELS[self.owner_kind]} range"
        super().__init__(message + ".")


class GroupRangeExhaustedError(GroupAllocationError):
    """Raised when every identifier of a kind's range is already used."""

    def __init__(self, kind: GroupKind):
        floor, ceiling = GROUP_ID_RANGES[kind]
        self.kind = kind
        super().__init__(
            f"No free {GROUP_KIND_LABELS[kind]} number left in range {floor}-{ceiling}."
        )


def group_id_range(kind: GroupKind) -> Tuple[int, int]:
    """Inclusive (floor, ceiling) of identifiers reserved for ``kind``."""
    return GROUP_ID_RANGES[kind]


def is_valid_group_id(kind: GroupKind, group_id: int) -> bool:
    floor, ceiling = GROUP_ID_RANGES[kind]
    return floor <= group_id <= ceiling


def kind_for_group_id(group_id: int) -> Optional[GroupKind]:
    """Reverse lookup: which kind's range contains ``group_id``."""
    for kind, (floor, ceiling) in GROUP_ID_RANGES.items():
        if floor <= group_id <= ceiling:
            return kind
    return None


def next_group_id(kind: GroupKind, existing_ids: Iterable[Optional[int]]) -> int:
    """Next free identifier for ``kind``: max(existing in range) + 1, else the floor.

    Identifiers belonging to other ranges (or missing) are ignored.

    Raises:
        GroupRangeExhaustedError: If the range ceiling is already used
    """
    floor, ceiling = GROUP_ID_RANGES[kind]
    in_range = [i for i in existing_ids if i is not None and floor <= i <= ceiling]
    if not in_range:
        return floor
    candidate = max(in_range) + 1
    if candidate > ceiling:
        raise GroupRangeExhaustedError(kind)
    return candidate


def allocate_group_id(
    kind: GroupKind,
    existing_ids: Iterable[Optional[int]] = (),
    requested: Optional[int] = None,
) -> int:
    """Validate a requested identifier or allocate the next free one.

    Args:
        kind: Grouping type selected by the author
        existing_ids: Identifiers already used in the lecture (any kind)
        requested: Identifier typed by the author, if any

    Returns:
        The identifier to use for the group

    Raises:
        InvalidGroupIdError: If ``requested`` is outside the kind's range
        GroupRangeExhaustedError: If no identifier is left in the range
    """
    if requested is not None:
        if not is_valid_group_id(kind, requested):
            raise InvalidGroupIdError(kind, requested)
        return requested
    return next_group_id(kind, existing_ids)


def infer_group_kind(
    questions: Sequence[StructuredQuestion], case_text: Optional[str] = None
) -> GroupKind:
    """Guess the grouping type when the author did not select one.

    A case preamble or mixed kinds make a clinical case; otherwise the group
    is a short-answer or MCQ group depending on its sub-questions.
    """
    kinds = {q.kind for q in questions}
    if case_text or len(kinds) != 1:
        return GroupKind.CLINICAL_CASE
    if kinds == {QuestionKind.SHORT_ANSWER}:
        return GroupKind.SHORT_ANSWER_GROUP
    return GroupKind.MCQ_GROUP


def document_key(text: str) -> str:
    """Whitespace-insensitive fingerprint of a pasted document."""
    lines = [line.strip() for line in normalize_newlines(text).split("\n")]
    canonical = "\n".join(line for line in lines if line)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class GroupIdAllocator:
    """Allocator scoped to one authoring session (or one CLI run).

    Allocated identifiers are remembered so that two documents never receive
    the same number, and re-parsing the same document (same ``document_key``)
    returns the number it already received instead of creating a new group.
    """

    def __init__(self, existing_ids: Iterable[Optional[int]] = ()):
        self._used = {i for i in existing_ids if i is not None}
        self._assigned: Dict[Tuple[GroupKind, str], int] = {}
        self._lock = threading.Lock()

    @property
    def used_ids(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(sorted(self._used))

    def allocate(
        self,
        kind: GroupKind,
        key: Optional[str] = None,
        requested: Optional[int] = None,
    ) -> int:
        """Allocate (or recall) the identifier for a document.

        Args:
            kind: Grouping type
            key: Document fingerprint from ``document_key``; omit for one-off allocation
            requested: Explicit identifier; validated against the kind's range

        Raises:
            InvalidGroupIdError: If ``requested`` is outside the kind's range
            GroupRangeExhaustedError: If no identifier is left in the range
        """
        with self._lock:
            if key is not None and requested is None:
                remembered = self._assigned.get((kind, key))
                if remembered is not None:
                    return remembered

            group_id = allocate_group_id(kind, self._used, requested)
            self._used.add(group_id)
            if key is not None:
                self._assigned[(kind, key)] = group_id
            return group_id
