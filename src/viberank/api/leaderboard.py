"""Leaderboard, submission and profile read endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..schemas import (
    GlobalStats,
    LeaderboardEntry,
    ProfileWithSubmissions,
    SortBy,
    SubmissionRecord,
)
from ..services import ProfileService, StatsService, SubmissionService
from .dependencies import get_profile_service, get_stats_service, get_submission_service

router = APIRouter()

DATE_QUERY = r"^\d{4}-\d{2}-\d{2}$"
MAX_LIMIT = 100


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
async def get_leaderboard(
    sort_by: SortBy = Query("cost", alias="sortBy"),
    limit: int = Query(MAX_LIMIT),
    date_from: Optional[str] = Query(None, alias="dateFrom", pattern=DATE_QUERY),
    date_to: Optional[str] = Query(None, alias="dateTo", pattern=DATE_QUERY),
    include_flagged: bool = Query(False, alias="includeFlagged"),
    service: SubmissionService = Depends(get_submission_service),
):
    limit = max(1, min(MAX_LIMIT, limit))
    return await service.get_leaderboard(
        sort_by=sort_by,
        limit=limit,
        date_from=date_from,
        date_to=date_to,
        include_flagged=include_flagged,
    )


@router.get("/submissions/{submission_id}", response_model=SubmissionRecord)
async def get_submission(
    submission_id: str,
    service: SubmissionService = Depends(get_submission_service),
):
    return await service.get_submission(submission_id)


@router.get("/profile/{username}", response_model=ProfileWithSubmissions)
async def get_profile(
    username: str,
    service: ProfileService = Depends(get_profile_service),
):
    return await service.get_profile(username)


@router.get("/stats", response_model=GlobalStats)
async def get_stats(
    date_from: Optional[str] = Query(None, alias="dateFrom", pattern=DATE_QUERY),
    date_to: Optional[str] = Query(None, alias="dateTo", pattern=DATE_QUERY),
    service: StatsService = Depends(get_stats_service),
):
    return await service.get_global_stats(date_from=date_from, date_to=date_to)
