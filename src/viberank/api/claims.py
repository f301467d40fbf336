"""Endpoints for signed-in users claiming their CLI submissions."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from ..observability.logging import set_log_context
from ..schemas import ClaimRequest, ClaimResult, ClaimStatus
from ..security.auth import SessionIdentity, require_session
from ..services import ClaimService
from .dependencies import get_claim_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/claim/status", response_model=ClaimStatus)
async def claim_status(
    identity: SessionIdentity = Depends(require_session),
    service: ClaimService = Depends(get_claim_service),
):
    return await service.check_claimable(identity.github_username)


@router.post("/claim", response_model=ClaimResult)
async def claim(
    body: Optional[ClaimRequest] = None,
    identity: SessionIdentity = Depends(require_session),
    service: ClaimService = Depends(get_claim_service),
):
    """Claim one submission, or verify and merge everything recorded for the caller."""
    set_log_context(username=identity.github_username)
    if body is not None and body.submission_id:
        submission = await service.claim_submission(body.submission_id, identity.github_username)
        return ClaimResult(action="claimed", submission_id=submission.id, merged_count=1)
    return await service.claim_and_merge(identity.github_username)
