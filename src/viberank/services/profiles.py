"""Profile lookups and admin pattern tooling."""

import logging
from typing import List, Sequence

from ..exceptions import NotFoundError
from ..schemas import (
    DeleteResult,
    PatternMatch,
    PatternSearchResult,
    ProfileRecord,
    ProfileWithSubmissions,
    SubmissionRecord,
)
from ..storage.base import PROFILES, SUBMISSIONS, StorageBackend

logger = logging.getLogger(__name__)

PROFILE_SUBMISSION_LIMIT = 25


def _fields_for(profile: dict, search_field: str) -> List[str]:
    github_username = profile.get("github_username") or ""
    username = profile.get("username") or ""
    if search_field == "githubUsername":
        return [github_username]
    if search_field == "username":
        return [username]
    return [github_username, username]


def matches_patterns(
    profile: dict,
    patterns: Sequence[str],
    search_field: str = "githubUsername",
    case_sensitive: bool = False,
) -> bool:
    """Substring match of any pattern against the selected profile field(s)."""
    for value in _fields_for(profile, search_field):
        candidate = value if case_sensitive else value.lower()
        for pattern in patterns:
            needle = pattern if case_sensitive else pattern.lower()
            if needle in candidate:
                return True
    return False


class ProfileService:
    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def get_profile(self, username: str) -> ProfileWithSubmissions:
        """Profile plus its most recent submissions, newest first."""
        profiles = await self.storage.query_eq(PROFILES, "username", username, limit=1)
        if not profiles:
            raise NotFoundError(f"Profile {username} not found")

        docs = await self.storage.query_eq(
            SUBMISSIONS, "username", username,
            order_by="submitted_at", descending=True,
            limit=PROFILE_SUBMISSION_LIMIT,
        )
        profile = ProfileRecord.model_validate(profiles[0])
        return ProfileWithSubmissions(
            **profile.model_dump(),
            submissions=[SubmissionRecord.model_validate(d) for d in docs],
        )

    async def _matching(
        self,
        patterns: Sequence[str],
        search_field: str,
        case_sensitive: bool,
    ) -> List[PatternMatch]:
        if not patterns:
            raise ValueError("At least one pattern must be provided")
        profiles = await self.storage.scan(PROFILES)
        return [
            PatternMatch.model_validate(p)
            for p in profiles
            if matches_patterns(p, patterns, search_field, case_sensitive)
        ]

    async def find_profiles_by_pattern(
        self,
        patterns: Sequence[str],
        search_field: str = "githubUsername",
        case_sensitive: bool = False,
    ) -> PatternSearchResult:
        matches = await self._matching(patterns, search_field, case_sensitive)
        return PatternSearchResult(
            count=len(matches),
            patterns=list(patterns),
            search_field=search_field,
            profiles=matches,
        )

    async def delete_profiles_by_pattern(
        self,
        patterns: Sequence[str],
        search_field: str = "githubUsername",
        case_sensitive: bool = False,
        dry_run: bool = False,
    ) -> DeleteResult:
        """Delete every profile matching any pattern.

        Only profile records are removed; their submissions stay in place.
        """
        matches = await self._matching(patterns, search_field, case_sensitive)
        logger.info(
            "Found %d profiles matching patterns: %s", len(matches), ", ".join(patterns)
        )

        deleted = 0
        if not dry_run:
            for match in matches:
                if await self.storage.delete(PROFILES, match.id):
                    deleted += 1
            logger.warning("Deleted %d profiles by pattern", deleted)

        if dry_run:
            message = f"Dry run: Would delete {len(matches)} profiles"
        else:
            message = f"Successfully deleted {deleted} profiles"

        return DeleteResult(
            message=message,
            matched_count=len(matches),
            deleted_count=deleted,
            dry_run=dry_run,
            patterns=list(patterns),
            search_field=search_field,
            profiles=matches,
        )
