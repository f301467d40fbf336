"""Tests for overlap detection and daily merging."""

from datetime import datetime, timezone

from viberank.core.merge import (
    compute_date_range,
    find_overlapping,
    merge_daily,
    merge_submission,
    ranges_overlap,
    summarize_days,
    unique_models,
)
from viberank.core.validation import ValidationResult
from viberank.schemas import DailyUsage, DateRange, SubmissionRecord, UsageReport


def _days(usage, *specs):
    return [DailyUsage.model_validate(usage.day(*args)) for args in specs]


def _submission(usage, record_id, days, source="cli", **extra) -> SubmissionRecord:
    summary = summarize_days(days)
    data = dict(
        id=record_id,
        username="alice",
        date_range=summary.date_range,
        models_used=summary.models_used,
        daily_breakdown=days,
        submitted_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
        source=source,
        **summary.totals(),
    )
    data.update(extra)
    return SubmissionRecord.model_validate(data)


class TestDateRanges:
    def test_compute_date_range(self, usage):
        days = _days(usage, ("2024-01-05",), ("2024-01-01",), ("2024-01-03",))

        assert compute_date_range(days) == DateRange(start="2024-01-01", end="2024-01-05")

    def test_compute_date_range_empty(self):
        assert compute_date_range([]) is None

    def test_touching_ranges_overlap(self):
        first = DateRange(start="2024-01-01", end="2024-01-10")
        second = DateRange(start="2024-01-10", end="2024-01-20")

        assert ranges_overlap(first, second) is True
        assert ranges_overlap(second, first) is True

    def test_disjoint_ranges_do_not_overlap(self):
        first = DateRange(start="2024-01-01", end="2024-01-09")
        second = DateRange(start="2024-01-10", end="2024-01-20")

        assert ranges_overlap(first, second) is False


class TestFindOverlapping:
    def test_first_match_in_store_order(self, usage):
        a = _submission(usage, "a", _days(usage, ("2024-01-01",), ("2024-01-10",)))
        b = _submission(usage, "b", _days(usage, ("2024-01-05",), ("2024-01-15",)))

        match = find_overlapping([a, b], "cli", DateRange(start="2024-01-08", end="2024-01-08"))

        assert match.id == "a"

    def test_other_source_ignored(self, usage):
        oauth = _submission(usage, "o", _days(usage, ("2024-01-01",)), source="oauth")

        assert find_overlapping([oauth], "cli", DateRange(start="2024-01-01", end="2024-01-01")) is None

    def test_missing_source_counts_as_oauth(self, usage):
        legacy = _submission(usage, "l", _days(usage, ("2024-01-01",)), source=None)
        window = DateRange(start="2024-01-01", end="2024-01-02")

        assert find_overlapping([legacy], "oauth", window).id == "l"
        assert find_overlapping([legacy], "cli", window) is None

    def test_non_overlapping_submissions_are_kept_apart(self, usage):
        january = _submission(usage, "jan", _days(usage, ("2024-01-01",), ("2024-01-31",)))

        window = DateRange(start="2024-03-01", end="2024-03-02")
        assert find_overlapping([january], "cli", window) is None


class TestMerge:
    def test_merge_daily_new_wins_and_sorted(self, usage):
        existing = _days(usage, ("2024-01-02", 100), ("2024-01-01", 100))
        new = _days(usage, ("2024-01-02", 999), ("2024-01-03", 100))

        merged = merge_daily(existing, new)

        assert [d.date for d in merged] == ["2024-01-01", "2024-01-02", "2024-01-03"]
        assert merged[1].input_tokens == 999

    def test_unique_models_preserves_order(self, usage):
        days = [
            DailyUsage.model_validate(usage.day("2024-01-01", models=["b", "a"])),
            DailyUsage.model_validate(usage.day("2024-01-02", models=["a", "c"])),
        ]

        assert unique_models(days, seed=["z", "b"]) == ["z", "b", "a", "c"]

    def test_merge_submission_recomputes_totals(self, usage):
        existing = _submission(
            usage, "s1", _days(usage, ("2024-01-01", 1000, 0), ("2024-01-02", 2000, 0))
        )
        payload = usage.report([
            usage.day("2024-01-02", input_tokens=5000, output_tokens=0),
            usage.day("2024-01-03", input_tokens=3000, output_tokens=0, models=["claude-opus-4"]),
        ])
        # Stated totals are ignored on merge
        payload["totals"]["totalCost"] = 12345.0
        report = UsageReport.model_validate(payload)

        fields = merge_submission(existing, report, ValidationResult())

        assert fields["input_tokens"] == 1000 + 5000 + 3000
        assert fields["total_tokens"] == 9000
        assert abs(fields["total_cost"] - 0.09) < 1e-9
        assert fields["date_range"] == {"start": "2024-01-01", "end": "2024-01-03"}
        assert fields["models_used"] == ["claude-sonnet-4-20250514", "claude-opus-4"]
        assert [d["date"] for d in fields["daily_breakdown"]] == [
            "2024-01-01", "2024-01-02", "2024-01-03",
        ]
        assert fields["submitted_at"] > existing.submitted_at

    def test_merge_keeps_existing_flag(self, usage):
        existing = _submission(
            usage, "s1", _days(usage, ("2024-01-01",)),
            flagged_for_review=True, flag_reasons=["old reason"],
        )
        report = UsageReport.model_validate(usage.single("2024-01-01"))

        fields = merge_submission(existing, report, ValidationResult())

        assert fields["flagged_for_review"] is True
        assert fields["flag_reasons"] == ["old reason"]

    def test_merge_new_flag_replaces_reasons(self, usage):
        existing = _submission(
            usage, "s1", _days(usage, ("2024-01-01",)),
            flagged_for_review=True, flag_reasons=["old reason"],
        )
        report = UsageReport.model_validate(usage.single("2024-01-01"))
        validation = ValidationResult()
        validation.flag("new reason")

        fields = merge_submission(existing, report, validation)

        assert fields["flagged_for_review"] is True
        assert fields["flag_reasons"] == ["new reason"]
