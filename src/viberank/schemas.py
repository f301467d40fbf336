"""Pydantic models shared by the core, the service layer and the HTTP API.

Wire format is camelCase (as produced by the ccusage tool); Python attributes
and storage documents are snake_case.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SubmissionSource = Literal["cli", "oauth"]
SortBy = Literal["cost", "tokens"]
SearchField = Literal["githubUsername", "username", "both"]


class CamelModel(BaseModel):
    """Base model accepting either snake_case or camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


# ---------------------------------------------------------------------------
# Usage report (submission input)
# ---------------------------------------------------------------------------


class UsageTotals(CamelModel):
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    total_cost: float
    total_tokens: int


class DailyUsage(CamelModel):
    """One day of token/cost usage."""

    date: str
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    total_tokens: int
    total_cost: float
    models_used: List[str] = Field(default_factory=list)


class UsageReport(CamelModel):
    """A usage report as produced by ``ccusage --json``."""

    totals: UsageTotals
    daily: List[DailyUsage]


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


class DateRange(CamelModel):
    start: str
    end: str


class SubmissionRecord(CamelModel):
    """A stored usage report for one user, one source and one date range."""

    id: str
    username: str
    github_username: Optional[str] = None
    github_name: Optional[str] = None
    github_avatar: Optional[str] = None
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    date_range: DateRange
    models_used: List[str] = Field(default_factory=list)
    daily_breakdown: List[DailyUsage] = Field(default_factory=list)
    submitted_at: datetime
    verified: bool = False
    source: Optional[SubmissionSource] = None
    claimed_by: Optional[str] = None
    flagged_for_review: bool = False
    flag_reasons: List[str] = Field(default_factory=list)

    @field_validator("models_used", "flag_reasons", mode="before")
    @classmethod
    def _none_as_empty(cls, v):
        return v or []

    @property
    def effective_source(self) -> str:
        """Legacy rows without a source were OAuth submissions."""
        return self.source or "oauth"


class LeaderboardEntry(SubmissionRecord):
    is_filtered: bool = False


class ProfileRecord(CamelModel):
    """Per-user aggregate pointing at the user's most relevant submission."""

    id: str
    username: str
    github_username: Optional[str] = None
    github_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None
    total_submissions: int = 0
    best_submission: Optional[str] = None
    created_at: datetime


class ProfileWithSubmissions(ProfileRecord):
    submissions: List[SubmissionRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


class SubmitResponse(CamelModel):
    success: bool = True
    submission_id: str
    action: Literal["created", "merged"]
    flagged_for_review: bool = False
    flag_reasons: List[str] = Field(default_factory=list)
    message: str
    profile_url: str


class GlobalStats(CamelModel):
    total_users: int
    total_submissions: int
    total_cost: float
    total_tokens: int
    avg_cost_per_user: float
    top_cost: float
    top_user: str
    model_usage: Dict[str, int]
    total_days: int
    avg_tokens_per_user: float


class ClaimStatus(CamelModel):
    action_needed: Optional[Literal["claim", "merge"]] = None
    action_text: str = ""
    cli_count: int = 0
    oauth_count: int = 0
    total_submissions: int = 0
    unverified_count: int = 0


class ClaimResult(CamelModel):
    success: bool = True
    action: Literal["already_verified", "claimed", "merged"]
    submission_id: str
    merged_count: int


class FlagUpdateRequest(CamelModel):
    flagged: bool
    reason: Optional[str] = None


class ClaimRequest(CamelModel):
    """Claim one submission by id; without an id, claim and merge all of them."""

    submission_id: Optional[str] = None


class PatternSearchRequest(CamelModel):
    patterns: List[str] = Field(min_length=1)
    search_field: SearchField = "githubUsername"
    case_sensitive: bool = False


class PatternDeleteRequest(PatternSearchRequest):
    dry_run: bool = False


class PatternMatch(CamelModel):
    id: str
    username: str
    github_username: Optional[str] = None
    created_at: datetime
    avatar: Optional[str] = None
    total_submissions: int = 0


class PatternSearchResult(CamelModel):
    count: int
    patterns: List[str]
    search_field: SearchField
    profiles: List[PatternMatch]


class DeleteResult(CamelModel):
    message: str
    matched_count: int
    deleted_count: int
    dry_run: bool
    patterns: List[str]
    search_field: SearchField
    profiles: List[PatternMatch]
