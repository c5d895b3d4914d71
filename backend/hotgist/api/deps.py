"""FastAPI dependencies resolving services from application state."""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from hotgist.domain.exceptions import InvalidFilter
from hotgist.services import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
	return request.app.state.container


def int_param(name: str, raw: Optional[str]) -> Optional[int]:
	"""Parse a paging query value; anything but an integer is a bad filter, not a schema error."""
	if raw is None or not raw.strip():
		return None
	try:
		return int(raw)
	except ValueError:
		raise InvalidFilter(f"{name} must be an integer") from None
