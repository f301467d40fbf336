"""FastAPI dependencies that build services over the configured storage."""

from fastapi import Depends

from ..config import Settings, get_settings
from ..services import ClaimService, ProfileService, StatsService, SubmissionService
from ..storage import StorageBackend, get_storage


def get_submission_service(
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> SubmissionService:
    return SubmissionService(storage, settings)


def get_profile_service(storage: StorageBackend = Depends(get_storage)) -> ProfileService:
    return ProfileService(storage)


def get_claim_service(storage: StorageBackend = Depends(get_storage)) -> ClaimService:
    return ClaimService(storage)


def get_stats_service(
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> StatsService:
    return StatsService(storage, settings)
