"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hotgist import __version__
from hotgist.api import campuses, ops, posts, reactions, trending
from hotgist.api.errors import install_error_handlers
from hotgist.domain.campuses import ensure_seeded
from hotgist.infra.storage import StorageAdapter, build_storage
from hotgist.obs import init as obs_init
from hotgist.obs import metrics as obs_metrics
from hotgist.services import ServiceContainer
from hotgist.settings import Settings, settings

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api"


async def startup(app: FastAPI, storage: StorageAdapter, config: Settings) -> ServiceContainer:
	"""Seed reference data and publish the service container on ``app.state``."""
	await ensure_seeded(storage)
	container = ServiceContainer.build(storage, config)
	app.state.container = container
	obs_metrics.mark_storage(storage.backend, await storage.ping())
	LOGGER.info("hotgist_started", extra={"backend": storage.backend, "version": __version__})
	return container


@asynccontextmanager
async def lifespan(app: FastAPI):
	# tests may install a container before startup
	container = getattr(app.state, "container", None)
	if container is None:
		storage = build_storage(settings.storage_backend, data_dir=settings.data_dir)
		container = await startup(app, storage, settings)
	try:
		yield
	finally:
		await container.storage.close()


def _cors_origins() -> list[str]:
	origins = list(settings.cors_allow_origins)
	if settings.client_url and settings.client_url not in origins:
		origins.append(settings.client_url)
	return origins or ["*"]


def create_app() -> FastAPI:
	application = FastAPI(title="HotGist API", version=__version__, lifespan=lifespan)
	install_error_handlers(application)
	origins = _cors_origins()
	application.add_middleware(
		CORSMiddleware,
		allow_origins=origins,
		allow_credentials="*" not in origins,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	obs_init(application)
	application.include_router(posts.router, prefix=API_PREFIX)
	application.include_router(reactions.router, prefix=API_PREFIX)
	application.include_router(trending.router, prefix=API_PREFIX)
	application.include_router(campuses.router, prefix=API_PREFIX)
	application.include_router(ops.router, prefix=API_PREFIX)
	return application


app = create_app()
