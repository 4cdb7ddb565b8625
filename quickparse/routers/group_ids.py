"""
Group identifier allocation endpoint.

Allocates (or validates) the shared group number of grouped sub-questions
against the numbers already used by the lecture's questions.
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from quickparse.config import get_settings
from quickparse.db.question_groups import list_group_numbers
from quickparse.db.supabase_client import get_supabase_client
from quickparse.middleware.rate_limit import RATE_LIMITS, limiter
from quickparse.models.api import GroupIdRequest, GroupIdResponse
from quickparse.models.questions import Diagnostic, Severity
from quickparse.services.group_allocator import (
    GroupRangeExhaustedError,
    InvalidGroupIdError,
    allocate_group_id,
    group_id_range,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["group-ids"])


@router.post(
    "/lectures/{lecture_id}/group-ids",
    response_model=GroupIdResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(RATE_LIMITS["group_ids"])  # type: ignore[untyped-decorator]
async def allocate_lecture_group_id(
    request: Request,
    lecture_id: str,
    body: GroupIdRequest,
) -> GroupIdResponse:
    """
    Allocate the group number for a new group of sub-questions.

    Without ``requested_id`` the next number of the kind's range is returned
    (highest used + 1, or the range floor). A requested number is only
    validated against the range.

    Returns:
        200: Allocated group number and the kind's range
        409: Every number of the kind's range is already used
        422: Requested number outside the kind's range
        503: Question store not configured or unreachable
    """
    settings = get_settings()
    floor, ceiling = group_id_range(body.kind)

    if body.requested_id is not None:
        existing: list[int] = []
    else:
        try:
            supabase_client = get_supabase_client()
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=str(e)
            )

        try:
            existing = await list_group_numbers(
                supabase_client, lecture_id, settings.questions_table
            )
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(e)
            )
        except Exception as e:
            logger.error(f"Failed to read group numbers for lecture {lecture_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Database error: {str(e)}"
            )

    try:
        group_id = allocate_group_id(body.kind, existing, requested=body.requested_id)
    except InvalidGroupIdError as e:
        diagnostic = Diagnostic(
            severity=Severity.ERROR, code="group_id_out_of_range", message=str(e)
        )
        raise HTTPException(
            status_code=422,
            detail={
                "message": str(e),
                "owner_kind": e.owner_kind.value if e.owner_kind else None,
                "diagnostics": [diagnostic.model_dump(mode="json")],
            }
        )
    except GroupRangeExhaustedError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e)
        )

    return GroupIdResponse(
        group_id=group_id,
        kind=body.kind,
        range_floor=floor,
        range_ceiling=ceiling,
    )
