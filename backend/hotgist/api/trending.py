"""Windowed trending views."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hotgist.api.deps import get_container, int_param
from hotgist.api.schemas import TrendingResponse, TrendingUsersResponse
from hotgist.services import ServiceContainer

router = APIRouter(prefix="/trending", tags=["trending"])


@router.get("", response_model=TrendingResponse)
async def trending_posts(
	limit: Optional[str] = Query(default=None),
	time_range: Optional[str] = Query(default=None, alias="timeRange"),
	container: ServiceContainer = Depends(get_container),
) -> TrendingResponse:
	result = await container.trending.get_trending(int_param("limit", limit), time_range)
	return TrendingResponse.from_result(result)


@router.get("/users", response_model=TrendingUsersResponse)
async def trending_users(
	limit: Optional[str] = Query(default=None),
	time_range: Optional[str] = Query(default=None, alias="timeRange"),
	container: ServiceContainer = Depends(get_container),
) -> TrendingUsersResponse:
	result = await container.trending.get_trending_users(int_param("limit", limit), time_range)
	return TrendingUsersResponse.from_result(result)
