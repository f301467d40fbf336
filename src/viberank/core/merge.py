"""Overlap detection and daily-record merging for repeated submissions."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..schemas import DailyUsage, DateRange, SubmissionRecord, UsageReport
from .validation import ValidationResult


@dataclass
class DaySummary:
    """Totals, models and date range derived from a list of days."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    total_tokens: int = 0
    total_cost: float = 0.0
    models_used: List[str] = field(default_factory=list)
    date_range: Optional[DateRange] = None

    def totals(self) -> Dict[str, Any]:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cache_creation_tokens": self.cache_creation_tokens,
            "cache_read_tokens": self.cache_read_tokens,
            "total_tokens": self.total_tokens,
            "total_cost": self.total_cost,
        }


def unique_models(days: Iterable[DailyUsage], seed: Iterable[str] = ()) -> List[str]:
    """Order-preserving union of model names."""
    seen = dict.fromkeys(seed)
    for day in days:
        seen.update(dict.fromkeys(day.models_used))
    return list(seen)


def compute_date_range(days: Sequence[DailyUsage]) -> Optional[DateRange]:
    """[min, max] of the day dates. YYYY-MM-DD sorts lexicographically."""
    if not days:
        return None
    dates = sorted(day.date for day in days)
    return DateRange(start=dates[0], end=dates[-1])


def summarize_days(days: Sequence[DailyUsage]) -> DaySummary:
    summary = DaySummary()
    for day in days:
        summary.input_tokens += day.input_tokens
        summary.output_tokens += day.output_tokens
        summary.cache_creation_tokens += day.cache_creation_tokens
        summary.cache_read_tokens += day.cache_read_tokens
        summary.total_tokens += day.total_tokens
        summary.total_cost += day.total_cost
    summary.models_used = unique_models(days)
    summary.date_range = compute_date_range(days)
    return summary


def ranges_overlap(first: DateRange, second: DateRange) -> bool:
    return first.start <= second.end and second.start <= first.end


def find_overlapping(
    existing: Sequence[SubmissionRecord],
    source: str,
    date_range: DateRange,
) -> Optional[SubmissionRecord]:
    """Return the first same-source submission whose range overlaps.

    Existing submissions are scanned in store order; a user may hold several
    non-overlapping submissions per source.
    """
    for submission in existing:
        if submission.effective_source != source:
            continue
        if ranges_overlap(submission.date_range, date_range):
            return submission
    return None


def merge_daily(
    existing_days: Iterable[DailyUsage],
    new_days: Iterable[DailyUsage],
) -> List[DailyUsage]:
    """Merge two day lists by date. Days from ``new_days`` win on conflict."""
    by_date: Dict[str, DailyUsage] = {day.date: day for day in existing_days}
    for day in new_days:
        by_date[day.date] = day
    return [by_date[d] for d in sorted(by_date)]


def merge_submission(
    existing: SubmissionRecord,
    report: UsageReport,
    validation: ValidationResult,
) -> Dict[str, Any]:
    """Compute the fields to patch onto ``existing`` when merging ``report``.

    Totals are always re-derived from the merged day list; the report's
    stated totals are ignored.
    """
    merged_days = merge_daily(existing.daily_breakdown, report.daily)
    summary = summarize_days(merged_days)

    flagged = existing.flagged_for_review or validation.flagged
    if validation.flagged:
        reasons = list(validation.reasons)
    else:
        reasons = list(existing.flag_reasons)

    fields = summary.totals()
    fields.update(
        date_range=summary.date_range.model_dump(),
        models_used=unique_models(report.daily, seed=existing.models_used),
        daily_breakdown=[day.model_dump() for day in merged_days],
        flagged_for_review=flagged,
        flag_reasons=reasons,
        submitted_at=datetime.now(timezone.utc),
    )
    return fields
