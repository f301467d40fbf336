"""Admin endpoints: flag review and profile cleanup.

All routes require the ``X-Admin-Key`` header.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from ..schemas import (
    DeleteResult,
    FlagUpdateRequest,
    PatternDeleteRequest,
    PatternSearchRequest,
    PatternSearchResult,
    SubmissionRecord,
)
from ..security.auth import require_admin
from ..services import ProfileService, SubmissionService
from .dependencies import get_profile_service, get_submission_service

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/flagged-submissions", response_model=List[SubmissionRecord])
async def list_flagged_submissions(
    service: SubmissionService = Depends(get_submission_service),
):
    return await service.get_flagged_submissions()


@router.patch("/submissions/{submission_id}/flag", response_model=SubmissionRecord)
async def update_flag(
    submission_id: str,
    body: FlagUpdateRequest,
    service: SubmissionService = Depends(get_submission_service),
):
    return await service.update_flag_status(submission_id, body.flagged, body.reason)


@router.post("/profiles/search", response_model=PatternSearchResult)
async def search_profiles(
    body: PatternSearchRequest,
    service: ProfileService = Depends(get_profile_service),
):
    return await service.find_profiles_by_pattern(
        body.patterns, body.search_field, body.case_sensitive
    )


@router.post("/profiles/delete", response_model=DeleteResult)
async def delete_profiles(
    body: PatternDeleteRequest,
    service: ProfileService = Depends(get_profile_service),
):
    return await service.delete_profiles_by_pattern(
        body.patterns, body.search_field, body.case_sensitive, dry_run=body.dry_run
    )
