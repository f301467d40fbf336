"""Claiming CLI submissions after a user signs in with GitHub."""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..core.merge import summarize_days
from ..exceptions import AuthorizationError, NotFoundError
from ..schemas import ClaimResult, ClaimStatus, DailyUsage, SubmissionRecord
from ..storage.base import PROFILES, SUBMISSIONS, StorageBackend

logger = logging.getLogger(__name__)

CLAIM_SCAN_LIMIT = 100


def _identities(submission: SubmissionRecord) -> set:
    return {n for n in (submission.username, submission.github_username) if n}


def _ensure_owner(submission: SubmissionRecord, claimer: str):
    if claimer not in _identities(submission):
        raise AuthorizationError(
            f"Submission {submission.id} does not belong to {claimer}"
        )


def merge_with_priority(submissions: List[SubmissionRecord]) -> List[DailyUsage]:
    """Union of all days. OAuth days replace CLI days for the same date."""
    by_date: Dict[str, DailyUsage] = {}
    for submission in submissions:
        is_oauth = submission.effective_source == "oauth"
        for day in submission.daily_breakdown:
            if is_oauth or day.date not in by_date:
                by_date[day.date] = day
    return [by_date[d] for d in sorted(by_date)]


class ClaimService:
    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def _submissions_for(self, github_username: str) -> List[SubmissionRecord]:
        docs = await self.storage.query_eq(
            SUBMISSIONS, "github_username", github_username, limit=CLAIM_SCAN_LIMIT
        )
        return [SubmissionRecord.model_validate(d) for d in docs]

    async def _profile_for(self, github_username: str) -> Optional[dict]:
        profiles = await self.storage.query_eq(
            PROFILES, "github_username", github_username, limit=1
        )
        if profiles:
            return profiles[0]
        profiles = await self.storage.query_eq(PROFILES, "username", github_username, limit=1)
        return profiles[0] if profiles else None

    async def check_claimable(self, github_username: str) -> ClaimStatus:
        submissions = await self._submissions_for(github_username)
        if not submissions:
            return ClaimStatus()

        cli_count = sum(1 for s in submissions if s.effective_source == "cli")
        oauth_count = sum(1 for s in submissions if s.effective_source == "oauth")
        unverified_count = sum(1 for s in submissions if not s.verified)

        status = ClaimStatus(
            cli_count=cli_count,
            oauth_count=oauth_count,
            total_submissions=len(submissions),
            unverified_count=unverified_count,
        )
        if len(submissions) == 1 and unverified_count:
            status.action_needed = "claim"
            status.action_text = "Verify your submission"
        elif len(submissions) > 1:
            status.action_needed = "merge"
            status.action_text = f"Merge {len(submissions)} submissions into one"
        return status

    async def claim_submission(self, submission_id: str, claimer: str) -> SubmissionRecord:
        """Mark a single submission as verified and owned by ``claimer``.

        Raises:
            NotFoundError: If the submission does not exist.
            AuthorizationError: If it is already verified or belongs to someone else.
        """
        doc = await self.storage.get(SUBMISSIONS, submission_id)
        if doc is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        submission = SubmissionRecord.model_validate(doc)

        if submission.verified:
            raise AuthorizationError(f"Submission {submission_id} is already verified")
        _ensure_owner(submission, claimer)

        profile = await self._profile_for(claimer)
        fields = {
            "verified": True,
            "claimed_by": profile["id"] if profile else None,
        }
        if not submission.github_username:
            fields["github_username"] = claimer
        await self.storage.patch(SUBMISSIONS, submission_id, fields)
        logger.info("Submission %s claimed by %s", submission_id, claimer)
        return submission.model_copy(update=fields)

    async def claim_and_merge(self, github_username: str) -> ClaimResult:
        """Verify and consolidate every submission recorded for a GitHub user."""
        submissions = await self._submissions_for(github_username)
        if not submissions:
            raise NotFoundError("No submissions found")

        for submission in submissions:
            if submission.verified:
                _ensure_owner(submission, github_username)

        if len(submissions) == 1 and submissions[0].verified:
            return ClaimResult(
                action="already_verified",
                submission_id=submissions[0].id,
                merged_count=1,
            )

        profile = await self._profile_for(github_username)
        claimed_by = profile["id"] if profile else None

        cli = [s for s in submissions if s.effective_source == "cli"]
        oauth = [s for s in submissions if s.effective_source == "oauth"]

        if not oauth and len(cli) == 1:
            await self.storage.patch(SUBMISSIONS, cli[0].id, {
                "verified": True,
                "claimed_by": claimed_by,
            })
            logger.info("Submission %s claimed by %s", cli[0].id, github_username)
            return ClaimResult(action="claimed", submission_id=cli[0].id, merged_count=1)

        if oauth:
            base = oauth[0]
        else:
            base = max(submissions, key=lambda s: s.submitted_at)

        merged_days = merge_with_priority(submissions)
        summary = summarize_days(merged_days)
        fields = summary.totals()
        fields.update(
            date_range=summary.date_range.model_dump(),
            models_used=summary.models_used,
            daily_breakdown=[day.model_dump() for day in merged_days],
            submitted_at=datetime.now(timezone.utc),
            verified=True,
            source="oauth" if oauth else base.effective_source,
            claimed_by=claimed_by,
        )
        await self.storage.patch(SUBMISSIONS, base.id, fields)

        deleted = 0
        for submission in submissions:
            if submission.id != base.id:
                await self.storage.delete(SUBMISSIONS, submission.id)
                deleted += 1

        if deleted and profile:
            await self.storage.patch(PROFILES, profile["id"], {
                "total_submissions": max(1, profile.get("total_submissions", 0) - deleted),
                "best_submission": base.id,
            })

        logger.info(
            "Merged %d submissions for %s into %s", len(submissions), github_username, base.id
        )
        return ClaimResult(
            action="merged",
            submission_id=base.id,
            merged_count=len(submissions),
        )
