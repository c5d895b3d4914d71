"""Operations endpoints providing health checks and metrics."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from hotgist.api.deps import get_container
from hotgist.api.schemas import HealthResponse
from hotgist.domain import models
from hotgist.obs import metrics as obs_metrics
from hotgist.services import ServiceContainer
from hotgist.settings import settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ops"])


async def require_metrics_access() -> None:
	if not settings.obs_metrics_public:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="metrics_not_public")


async def _storage_ok(container: ServiceContainer, timeout: float = 0.5) -> bool:
	try:
		return await asyncio.wait_for(container.storage.ping(), timeout=timeout)
	except asyncio.TimeoutError:
		LOGGER.warning("storage_health_timeout", extra={"backend": container.storage.backend})
		return False


@router.get("/health")
async def health(container: ServiceContainer = Depends(get_container)) -> Response:
	ok = await _storage_ok(container)
	obs_metrics.mark_storage(container.storage.backend, ok)
	payload = HealthResponse(
		status="ok" if ok else "degraded",
		service=settings.service_name,
		storage=container.storage.backend,
		storage_ok=ok,
		timestamp=models.utcnow(),
	)
	return JSONResponse(
		content=payload.model_dump(by_alias=True, mode="json"),
		status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
	)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)
