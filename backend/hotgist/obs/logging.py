"""JSON log lines with request-scoped context.

Every record carries ``ts, level, msg, logger, service, env``. Fields bound for
the current request (request id, route, client ip) and any ``extra=`` values are
merged in after sanitizing: post and comment bodies never reach the logs.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from hotgist.settings import settings

LOGGER_NAME = "hotgist"

_REQUEST_CONTEXT: ContextVar[Mapping[str, Any]] = ContextVar("hotgist_request_context", default={})

REDACTED = "[redacted]"
_REDACT_MARKERS = ("content", "text", "body", "token", "secret", "password", "authorization")
_MAX_STRING = 256
_MAX_ITEMS = 10

# attributes every LogRecord has; anything else came in through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def bind_context(**fields: Any) -> Token:
	"""Layer ``fields`` over the current request context; ``None`` values are skipped."""
	merged = dict(_REQUEST_CONTEXT.get())
	merged.update({key: value for key, value in fields.items() if value is not None})
	return _REQUEST_CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_REQUEST_CONTEXT.reset(token)


def current_request_id() -> Optional[str]:
	return _REQUEST_CONTEXT.get().get("request_id")


def sanitize(key: str, value: Any) -> Any:
	if any(marker in key.lower() for marker in _REDACT_MARKERS):
		return REDACTED
	if isinstance(value, str) and len(value) > _MAX_STRING:
		return value[:_MAX_STRING] + "..."
	if isinstance(value, Mapping):
		return {str(k): sanitize(str(k), v) for k, v in list(value.items())[:_MAX_ITEMS]}
	if isinstance(value, (list, tuple, set, frozenset)):
		return [sanitize(key, item) for item in list(value)[:_MAX_ITEMS]]
	if isinstance(value, datetime):
		return value.isoformat()
	return value


class JSONLogFormatter(logging.Formatter):
	"""One JSON object per line."""

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (logging api)
		payload: dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
		}
		payload.update(_REQUEST_CONTEXT.get())
		for key, value in vars(record).items():
			if key in _STANDARD_ATTRS or key.startswith("_"):
				continue
			payload[key] = sanitize(key, value)
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Keep a ``obs_log_sampling_rate_info`` share of INFO lines; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = settings.obs_log_sampling_rate_info
		return rate >= 1.0 or random.random() < max(rate, 0.0)


def configure_logging() -> logging.Logger:
	"""Route the root logger through the JSON formatter."""
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root = logging.getLogger()
	root.handlers = [handler]
	root.setLevel(settings.obs_log_level.upper())
	return logging.getLogger(LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or LOGGER_NAME)


__all__ = [
	"InfoSamplingFilter",
	"JSONLogFormatter",
	"bind_context",
	"configure_logging",
	"current_request_id",
	"get_logger",
	"reset_context",
	"sanitize",
]
