"""Request instrumentation: request ids, access logs and HTTP metrics."""

from __future__ import annotations

import logging
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from hotgist.obs import logging as obs_logging
from hotgist.obs import metrics

REQUEST_ID_HEADER = "X-Request-Id"

ACCESS_LOGGER = logging.getLogger("hotgist.http")


def route_label(request: Request) -> str:
	"""Templated path (``/api/posts/{post_id}``) so metric labels stay bounded."""
	route = request.scope.get("route")
	return getattr(route, "path", None) or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		request.state.request_id = request_id
		token = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			ip=request.client.host if request.client else None,
		)
		started = perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			ACCESS_LOGGER.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			elapsed = perf_counter() - started
			metrics.observe_request(route_label(request), request.method, status_code, elapsed)
			ACCESS_LOGGER.info(
				"http_request",
				extra={"method": request.method, "status": status_code, "latency_ms": round(elapsed * 1000, 3)},
			)
			obs_logging.reset_context(token)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app: FastAPI) -> None:
	app.add_middleware(ObservabilityMiddleware)


__all__ = ["ObservabilityMiddleware", "install", "route_label"]
