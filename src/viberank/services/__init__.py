"""Service layer over the storage backends."""

from .claims import ClaimService
from .profiles import ProfileService
from .stats import StatsService
from .submissions import SubmissionService, Submitter, UpsertResult

__all__ = [
    "ClaimService",
    "ProfileService",
    "StatsService",
    "SubmissionService",
    "Submitter",
    "UpsertResult",
]
