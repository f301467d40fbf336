"""Site-wide aggregate statistics."""

from typing import Dict, List, Optional

from ..config import Settings, get_settings
from ..core.leaderboard import restrict_to_range
from ..schemas import GlobalStats, SubmissionRecord
from ..storage.base import SUBMISSIONS, StorageBackend


def model_bucket(model: str) -> str:
    return "opus" if "opus" in model else "sonnet"


def compute_stats(submissions: List[SubmissionRecord]) -> GlobalStats:
    unique_users = len({s.username for s in submissions})
    total_cost = sum(s.total_cost for s in submissions)
    total_tokens = sum(s.total_tokens for s in submissions)

    top = max(submissions, key=lambda s: s.total_cost, default=None)

    model_usage: Dict[str, int] = {}
    for submission in submissions:
        for model in submission.models_used:
            key = model_bucket(model)
            model_usage[key] = model_usage.get(key, 0) + 1

    return GlobalStats(
        total_users=unique_users,
        total_submissions=len(submissions),
        total_cost=total_cost,
        total_tokens=total_tokens,
        avg_cost_per_user=total_cost / unique_users if unique_users else 0,
        top_cost=top.total_cost if top else 0,
        top_user=top.username if top else "N/A",
        model_usage=model_usage,
        total_days=sum(len(s.daily_breakdown) for s in submissions),
        avg_tokens_per_user=total_tokens / unique_users if unique_users else 0,
    )


class StatsService:
    def __init__(self, storage: StorageBackend, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()

    async def get_global_stats(
        self,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
    ) -> GlobalStats:
        """Aggregate over all submissions.

        With a date range each submission is first cut down to its in-range
        days; submissions with none are left out.
        """
        docs = await self.storage.scan(SUBMISSIONS, limit=self.settings.leaderboard_scan_cap)
        submissions = [SubmissionRecord.model_validate(d) for d in docs]

        if date_from is not None or date_to is not None:
            restricted = (restrict_to_range(s, date_from, date_to) for s in submissions)
            submissions = [s for s in restricted if s is not None]

        return compute_stats(submissions)
