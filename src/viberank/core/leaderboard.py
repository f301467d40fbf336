"""Leaderboard ordering and date-range restriction."""

from typing import Iterable, List, Optional

from ..schemas import LeaderboardEntry, SubmissionRecord
from .merge import summarize_days

SORT_FIELDS = {
    "cost": "total_cost",
    "tokens": "total_tokens",
}


def sort_field(sort_by: str) -> str:
    try:
        return SORT_FIELDS[sort_by]
    except KeyError:
        raise ValueError(f"sort_by must be one of: {sorted(SORT_FIELDS)}")


def restrict_to_range(
    submission: SubmissionRecord,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Optional[LeaderboardEntry]:
    """Recompute a submission's totals over the days inside [date_from, date_to].

    Either bound may be omitted. Returns None when no day falls in range.
    """
    days = [
        day for day in submission.daily_breakdown
        if (date_from is None or day.date >= date_from)
        and (date_to is None or day.date <= date_to)
    ]
    if not days:
        return None

    summary = summarize_days(days)
    data = submission.model_dump()
    data.update(summary.totals())
    data.update(
        date_range=summary.date_range.model_dump(),
        models_used=summary.models_used,
        daily_breakdown=[day.model_dump() for day in days],
        is_filtered=True,
    )
    return LeaderboardEntry.model_validate(data)


def rank(entries: Iterable[SubmissionRecord], sort_by: str, limit: int) -> List:
    """Stable descending sort by the requested metric, truncated to ``limit``."""
    field_name = sort_field(sort_by)
    ordered = sorted(entries, key=lambda e: getattr(e, field_name), reverse=True)
    return ordered[:limit]


def filter_by_date_range(
    submissions: Iterable[SubmissionRecord],
    sort_by: str,
    limit: int,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    include_flagged: bool = False,
) -> List[LeaderboardEntry]:
    """Date-filtered leaderboard over an already-loaded set of submissions."""
    entries = []
    for submission in submissions:
        if submission.flagged_for_review and not include_flagged:
            continue
        entry = restrict_to_range(submission, date_from, date_to)
        if entry is not None:
            entries.append(entry)
    return rank(entries, sort_by, limit)
