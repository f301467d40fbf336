"""Submission model: one user's usage report for one source and date range."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, utcnow


class Submission(Base):
    """Stored usage report.

    ``daily_breakdown`` holds the per-day records as a JSON list; the totals
    columns are kept alongside so the leaderboard can sort on an index.
    """

    __tablename__ = "submissions"

    username: Mapped[str] = mapped_column(String(255), nullable=False)
    github_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    github_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    github_avatar: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    input_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    output_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    cache_creation_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    cache_read_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_tokens: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # {"start": "YYYY-MM-DD", "end": "YYYY-MM-DD"}
    date_range: Mapped[Dict[str, str]] = mapped_column(JSONType, nullable=False)
    models_used: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    daily_breakdown: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )

    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    claimed_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    flagged_for_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    flag_reasons: Mapped[Optional[List[str]]] = mapped_column(JSONType, nullable=True)

    __table_args__ = (
        Index("ix_submissions_total_cost", "total_cost"),
        Index("ix_submissions_total_tokens", "total_tokens"),
        Index("ix_submissions_submitted_at", "submitted_at"),
        Index("ix_submissions_username", "username"),
        Index("ix_submissions_github_username", "github_username"),
        Index("ix_submissions_flagged", "flagged_for_review", "submitted_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Submission(username='{self.username}', source='{self.source}', "
            f"total_cost={self.total_cost})>"
        )
