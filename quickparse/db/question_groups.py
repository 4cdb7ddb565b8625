"""Read access to the group numbers already used by a lecture's questions.

Grouped sub-questions share a ``case_number``. Allocation of a new number
needs every number already used in the lecture, whatever the grouping type,
since the ranges are checked by the allocator.
"""

import asyncio
from typing import List

from supabase import Client

from quickparse.utils.retry import retry_with_backoff

DEFAULT_QUESTIONS_TABLE = "questions"


@retry_with_backoff()
async def list_group_numbers(
    client: Client,
    lecture_id: str,
    table: str = DEFAULT_QUESTIONS_TABLE,
) -> List[int]:
    """Distinct group numbers used by the questions of a lecture.

    Args:
        client: Supabase client instance
        lecture_id: Lecture whose questions are scanned
        table: Questions table name

    Returns:
        List[int]: Sorted distinct group numbers (rows without one are skipped)

    Raises:
        ValueError: If lecture_id is empty
        Exception: If the database query fails after retries
    """
    if not lecture_id or not lecture_id.strip():
        raise ValueError("lecture_id must be a non-empty string")

    response = await asyncio.to_thread(
        lambda: client.table(table)
        .select("case_number")
        .eq("lecture_id", lecture_id)
        .not_.is_("case_number", "null")
        .execute()
    )

    numbers = set()
    for row in response.data or []:
        value = row.get("case_number")
        if value is None:
            continue
        try:
            numbers.add(int(value))
        except (TypeError, ValueError):
            continue
    return sorted(numbers)
