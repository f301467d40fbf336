"""Usage report submission endpoint."""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..exceptions import RateLimitExceededError, SubmissionValidationError
from ..schemas import SubmitResponse, UsageReport
from ..security.auth import get_submitter
from ..services.submissions import SubmissionService, Submitter
from .dependencies import get_submission_service

logger = logging.getLogger(__name__)

router = APIRouter()

MISSING_FIELDS = "Invalid cc.json format. Missing 'daily' or 'totals' field."


def _describe(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"Invalid cc.json format: {location}: {first['msg']}"


@router.post("/submit", response_model=SubmitResponse)
async def submit_usage(
    request: Request,
    submitter: Submitter = Depends(get_submitter),
    service: SubmissionService = Depends(get_submission_service),
    settings: Settings = Depends(get_settings),
):
    """Submit a usage report generated by ``ccusage --json``."""
    limits = request.app.state.submission_limits
    key = submitter.username

    blocked, retry_after = limits.failures.blocked(key)
    if blocked:
        raise RateLimitExceededError(
            "Too many failed submissions. Please try again later.",
            retry_after=retry_after,
        )

    body = await request.body()
    if len(body) > settings.max_submission_bytes:
        raise HTTPException(status_code=413, detail="Submission too large")

    try:
        try:
            data = json.loads(body)
        except ValueError:
            raise SubmissionValidationError("Request body is not valid JSON.")

        if not isinstance(data, dict) or data.get("daily") is None or data.get("totals") is None:
            raise SubmissionValidationError(MISSING_FIELDS)

        blocked, retry_after = limits.submissions.blocked(key)
        if blocked:
            raise RateLimitExceededError(
                f"Rate limit exceeded. Please wait {int(retry_after) + 1} seconds "
                "before submitting again.",
                retry_after=retry_after,
            )

        try:
            report = UsageReport.model_validate(data)
        except ValidationError as e:
            raise SubmissionValidationError(_describe(e))

        result = await service.upsert(submitter, report)
    except SubmissionValidationError as e:
        limits.failures.hit(key)
        logger.info("Rejected submission from %s: %s", key, e.message)
        raise

    limits.submissions.hit(key)

    if result.action == "merged":
        message = f"Successfully merged data for {submitter.username}"
    else:
        message = f"Successfully submitted data for {submitter.username}"

    return SubmitResponse(
        submission_id=result.submission_id,
        action=result.action,
        flagged_for_review=result.flagged,
        flag_reasons=result.flag_reasons,
        message=message,
        profile_url=settings.profile_url(submitter.username),
    )
