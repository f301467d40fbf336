"""Profile model: per-user aggregate over submissions."""

from typing import Optional

from sqlalchemy import Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Profile(Base):
    """One profile per username.

    ``best_submission`` is a plain reference to a submission id, not a
    foreign key: submissions can be removed by admin tooling without
    touching the profile row.
    """

    __tablename__ = "profiles"

    username: Mapped[str] = mapped_column(String(255), nullable=False)
    github_username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    github_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    total_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_submission: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_profiles_username", "username"),
        Index("ix_profiles_github_username", "github_username"),
    )

    def __repr__(self) -> str:
        return f"<Profile(username='{self.username}', total_submissions={self.total_submissions})>"
