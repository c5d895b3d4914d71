"""API endpoints for campuses."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from hotgist.api.deps import get_container
from hotgist.api.schemas import CampusListResponse, CampusView, PostListResponse, PostView
from hotgist.domain import campuses
from hotgist.services import ServiceContainer

router = APIRouter(tags=["campuses"])


@router.get("/campuses", response_model=CampusListResponse)
async def list_campuses(container: ServiceContainer = Depends(get_container)) -> CampusListResponse:
	"""List all available campuses."""
	records = await campuses.list_campuses(container.storage)
	return CampusListResponse(campuses=[CampusView.model_validate(campus.model_dump()) for campus in records])


@router.get("/campus/{campus}/posts", response_model=PostListResponse)
async def campus_posts(campus: str, container: ServiceContainer = Depends(get_container)) -> PostListResponse:
	items = await container.posts.list_campus_posts(campus)
	return PostListResponse(campus=campus, count=len(items), posts=[PostView.from_item(item) for item in items])
