"""Submission write path and leaderboard read path."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import Settings, get_settings
from ..core.leaderboard import filter_by_date_range, rank, sort_field
from ..core.merge import (
    compute_date_range,
    find_overlapping,
    merge_submission,
    unique_models,
)
from ..core.validation import ValidationResult, validate_report
from ..exceptions import NotFoundError
from ..observability.logging import set_log_context
from ..schemas import LeaderboardEntry, SubmissionRecord, UsageReport
from ..storage.base import PROFILES, SUBMISSIONS, StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class Submitter:
    """Identity of whoever is submitting a report."""
    username: str
    source: str = "cli"
    verified: bool = False
    github_username: Optional[str] = None
    github_name: Optional[str] = None
    github_avatar: Optional[str] = None

    def github_fields(self) -> Dict[str, str]:
        """GitHub metadata that is actually known. Unknown values never overwrite."""
        values = {
            "github_username": self.github_username,
            "github_name": self.github_name,
            "github_avatar": self.github_avatar,
        }
        return {k: v for k, v in values.items() if v is not None}


@dataclass
class UpsertResult:
    submission_id: str
    action: str
    flagged: bool = False
    flag_reasons: List[str] = field(default_factory=list)


class SubmissionService:
    """Validates, deduplicates and stores usage reports."""

    def __init__(self, storage: StorageBackend, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    async def upsert(
        self,
        submitter: Submitter,
        report: UsageReport,
        today: Optional[date] = None,
    ) -> UpsertResult:
        """Store a report, merging it into an overlapping same-source submission.

        Raises:
            SubmissionValidationError: If the report is rejected.
            StorageError: If a read or write fails.
        """
        set_log_context(username=submitter.username)
        validation = validate_report(report, today=today)

        docs = await self.storage.query_eq(SUBMISSIONS, "username", submitter.username)
        existing = [SubmissionRecord.model_validate(d) for d in docs]
        date_range = compute_date_range(report.daily)

        match = find_overlapping(existing, submitter.source, date_range)
        if match is not None:
            fields = merge_submission(match, report, validation)
            fields.update(submitter.github_fields())
            await self.storage.patch(SUBMISSIONS, match.id, fields)
            submission_id = match.id
            action = "merged"
            flagged = fields["flagged_for_review"]
            reasons = fields["flag_reasons"]
        else:
            document = self._new_document(submitter, report, validation)
            submission_id = await self.storage.insert(SUBMISSIONS, document)
            action = "created"
            flagged = validation.flagged
            reasons = list(validation.reasons)

        set_log_context(submission_id=submission_id)
        await self._update_profile(submitter, submission_id, created=action == "created")

        if flagged:
            logger.warning(
                "Submission %s %s and flagged for review: %s",
                submission_id, action, "; ".join(reasons),
            )
        else:
            logger.info("Submission %s %s for %s", submission_id, action, submitter.username)

        return UpsertResult(
            submission_id=submission_id,
            action=action,
            flagged=flagged,
            flag_reasons=reasons,
        )

    def _new_document(
        self,
        submitter: Submitter,
        report: UsageReport,
        validation: ValidationResult,
    ) -> Dict[str, Any]:
        totals = report.totals
        days = sorted(report.daily, key=lambda d: d.date)
        document = {
            "username": submitter.username,
            "github_username": None,
            "github_name": None,
            "github_avatar": None,
            "input_tokens": totals.input_tokens,
            "output_tokens": totals.output_tokens,
            "cache_creation_tokens": totals.cache_creation_tokens,
            "cache_read_tokens": totals.cache_read_tokens,
            "total_tokens": totals.total_tokens,
            "total_cost": totals.total_cost,
            "date_range": compute_date_range(days).model_dump(),
            "models_used": unique_models(days),
            "daily_breakdown": [day.model_dump() for day in days],
            "submitted_at": datetime.now(timezone.utc),
            "verified": submitter.verified,
            "source": submitter.source,
            "claimed_by": None,
            "flagged_for_review": validation.flagged,
            "flag_reasons": list(validation.reasons),
        }
        document.update(submitter.github_fields())
        return document

    async def _update_profile(self, submitter: Submitter, submission_id: str, created: bool):
        profiles = await self.storage.query_eq(
            PROFILES, "username", submitter.username, limit=1
        )
        if not profiles:
            await self.storage.insert(PROFILES, {
                "username": submitter.username,
                "github_username": submitter.github_username,
                "github_name": submitter.github_name,
                "avatar": submitter.github_avatar,
                "bio": None,
                "total_submissions": 1,
                "best_submission": submission_id,
            })
            logger.info("Created profile for %s", submitter.username)
            return

        profile = profiles[0]
        fields: Dict[str, Any] = {"best_submission": submission_id}
        if created:
            fields["total_submissions"] = profile.get("total_submissions", 0) + 1
        github = submitter.github_fields()
        if "github_avatar" in github:
            github["avatar"] = github.pop("github_avatar")
        fields.update(github)
        await self.storage.patch(PROFILES, profile["id"], fields)

    async def get_leaderboard(
        self,
        sort_by: str = "cost",
        limit: int = 100,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        include_flagged: bool = False,
    ) -> List[LeaderboardEntry]:
        """Top submissions by cost or tokens, optionally restricted to a date range."""
        field_name = sort_field(sort_by)

        if date_from is None and date_to is None:
            # Over-fetch so dropping flagged entries still fills the page
            docs = await self.storage.query_top(SUBMISSIONS, field_name, limit * 2)
            entries = [LeaderboardEntry.model_validate(d) for d in docs]
            if not include_flagged:
                entries = [e for e in entries if not e.flagged_for_review]
            return rank(entries, sort_by, limit)

        docs = await self.storage.scan(SUBMISSIONS, limit=self.settings.leaderboard_scan_cap)
        submissions = [SubmissionRecord.model_validate(d) for d in docs]
        return filter_by_date_range(
            submissions,
            sort_by,
            limit,
            date_from=date_from,
            date_to=date_to,
            include_flagged=include_flagged,
        )

    async def get_submission(self, submission_id: str) -> SubmissionRecord:
        doc = await self.storage.get(SUBMISSIONS, submission_id)
        if doc is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return SubmissionRecord.model_validate(doc)

    async def get_flagged_submissions(self) -> List[SubmissionRecord]:
        docs = await self.storage.query_eq(
            SUBMISSIONS, "flagged_for_review", True,
            order_by="submitted_at", descending=True,
        )
        return [SubmissionRecord.model_validate(d) for d in docs]

    async def update_flag_status(
        self,
        submission_id: str,
        flagged: bool,
        reason: Optional[str] = None,
    ) -> SubmissionRecord:
        """Set or clear the review flag.

        Flagging with a reason appends it to the existing reasons; clearing
        the flag drops all reasons.
        """
        submission = await self.get_submission(submission_id)
        if flagged:
            reasons = list(submission.flag_reasons)
            if reason:
                reasons.append(reason)
        else:
            reasons = []

        await self.storage.patch(SUBMISSIONS, submission_id, {
            "flagged_for_review": flagged,
            "flag_reasons": reasons,
        })
        logger.info(
            "Submission %s %s by admin", submission_id, "flagged" if flagged else "unflagged"
        )
        return submission.model_copy(
            update={"flagged_for_review": flagged, "flag_reasons": reasons}
        )
