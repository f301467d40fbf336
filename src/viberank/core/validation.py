"""Usage report validation.

Hard failures raise ``SubmissionValidationError`` and reject the whole report.
Soft failures (suspiciously large days, high average spend) only mark the
report as flagged for review and are returned in ``ValidationResult``.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional

from ..exceptions import SubmissionValidationError
from ..schemas import DailyUsage, UsageReport

TOKEN_TOLERANCE = 1

MAX_DAILY_COST = 5000
MAX_DAILY_TOKENS = 250_000_000
MAX_TOTAL_COST = MAX_DAILY_COST * 365
MAX_TOTAL_TOKENS = MAX_DAILY_TOKENS * 365

# USD per token
MIN_COST_PER_TOKEN = 1e-8
MAX_COST_PER_TOKEN = 0.1

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class ValidationResult:
    """Outcome of a successful validation."""
    flagged: bool = False
    reasons: List[str] = field(default_factory=list)

    def flag(self, reason: str):
        self.flagged = True
        self.reasons.append(reason)


def _category_sum(entry) -> int:
    return (
        entry.input_tokens
        + entry.output_tokens
        + entry.cache_creation_tokens
        + entry.cache_read_tokens
    )


def _parse_day(value: str) -> date:
    if not DATE_PATTERN.match(value):
        raise SubmissionValidationError(
            f"Invalid date format: {value}. Expected YYYY-MM-DD"
        )
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise SubmissionValidationError(
            f"Invalid date format: {value}. Expected YYYY-MM-DD"
        )


def _check_day(day: DailyUsage) -> date:
    parsed = _parse_day(day.date)

    numbers = (
        day.input_tokens,
        day.output_tokens,
        day.cache_creation_tokens,
        day.cache_read_tokens,
        day.total_tokens,
        day.total_cost,
    )
    if not all(math.isfinite(n) for n in numbers):
        raise SubmissionValidationError(
            f"Invalid numeric values in daily data for {day.date}."
        )
    if any(n < 0 for n in numbers):
        raise SubmissionValidationError(
            f"Negative values are not allowed in daily data for {day.date}."
        )

    if abs(_category_sum(day) - day.total_tokens) > TOKEN_TOLERANCE:
        raise SubmissionValidationError(f"Token totals don't match for {day.date}.")

    return parsed


def validate_report(report: UsageReport, today: Optional[date] = None) -> ValidationResult:
    """Validate a usage report.

    Args:
        report: Parsed usage report.
        today: Reference date for the future-date check. Defaults to the
            current UTC date.

    Returns:
        ValidationResult with the flag state and human-readable reasons.

    Raises:
        SubmissionValidationError: If the report must be rejected.
    """
    totals = report.totals

    if not math.isfinite(totals.total_cost):
        raise SubmissionValidationError("Invalid numeric values in totals.")

    if abs(_category_sum(totals) - totals.total_tokens) > TOKEN_TOLERANCE:
        raise SubmissionValidationError(
            "Token totals don't match. Please use official ccusage tool."
        )

    if totals.total_cost < 0 or totals.total_tokens < 0:
        raise SubmissionValidationError("Negative values are not allowed.")

    if totals.total_cost > MAX_TOTAL_COST:
        raise SubmissionValidationError("Total cost exceeds realistic limits.")
    if totals.total_tokens > MAX_TOTAL_TOKENS:
        raise SubmissionValidationError("Total tokens exceed realistic limits.")

    if totals.total_tokens > 0:
        cost_per_token = totals.total_cost / totals.total_tokens
        if not MIN_COST_PER_TOKEN <= cost_per_token <= MAX_COST_PER_TOKEN:
            raise SubmissionValidationError(
                f"Unrealistic cost per token: ${cost_per_token:.10f}."
            )

    if not report.daily:
        raise SubmissionValidationError("At least one day of usage data is required.")

    parsed_days = [_check_day(day) for day in report.daily]

    result = ValidationResult()

    for day in report.daily:
        if day.total_cost > MAX_DAILY_COST:
            result.flag(
                f"Daily cost of ${day.total_cost:,.2f} on {day.date} "
                f"exceeds ${MAX_DAILY_COST:,}"
            )
        if day.total_tokens > MAX_DAILY_TOKENS:
            result.flag(
                f"Daily tokens of {day.total_tokens:,} on {day.date} "
                f"exceed {MAX_DAILY_TOKENS:,}"
            )

    distinct_days = len({day.date for day in report.daily})
    avg_daily_cost = totals.total_cost / distinct_days
    if avg_daily_cost > MAX_DAILY_COST / 2:
        result.flag(f"Average daily cost of ${avg_daily_cost:,.2f} is unusually high")

    if today is None:
        today = datetime.now(timezone.utc).date()
    for day, parsed in zip(report.daily, parsed_days):
        if parsed > today:
            raise SubmissionValidationError(f"Future date detected: {day.date}")

    return result
