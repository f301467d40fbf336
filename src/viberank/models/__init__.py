"""Database models for Viberank."""

from .base import Base
from .profile import Profile
from .submission import Submission

__all__ = [
    "Base",
    "Profile",
    "Submission",
]
