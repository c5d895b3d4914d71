"""Global error handlers rendering ``{success, error, message, requestId}`` bodies."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hotgist.domain.exceptions import HotGistError, ValidationError
from hotgist.obs import logging as obs_logging

LOGGER = logging.getLogger(__name__)


def get_request_id(request: Request) -> Optional[str]:
	return getattr(request.state, "request_id", None) or obs_logging.current_request_id()


def error_payload(request: Request, code: str, message: str, **extra) -> dict:
	payload = {"success": False, "error": code, "message": message, "requestId": get_request_id(request)}
	payload.update(extra)
	return payload


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(HotGistError)
	async def hotgist_exc_handler(request: Request, exc: HotGistError):  # type: ignore[override]
		if exc.status_code >= 500:
			LOGGER.warning("request_failed", extra={"error": exc.code, "detail": exc.detail})
		return JSONResponse(status_code=exc.status_code, content=error_payload(request, exc.code, exc.detail))

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		code = "not_found" if exc.status_code == 404 else "http_error"
		return JSONResponse(status_code=exc.status_code, content=error_payload(request, code, str(exc.detail)))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		errors = [
			{"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
			for error in exc.errors()
		]
		return JSONResponse(
			status_code=ValidationError.status_code,
			content=error_payload(request, ValidationError.code, "Request validation failed", errors=errors),
		)


__all__ = ["error_payload", "get_request_id", "install_error_handlers"]
