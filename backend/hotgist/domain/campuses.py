"""Campus reference data and lookups."""

from __future__ import annotations

import logging

from hotgist.domain import models
from hotgist.domain.exceptions import InvalidFilter
from hotgist.infra.storage import CAMPUSES, StorageAdapter

LOGGER = logging.getLogger(__name__)

DEFAULT_CAMPUSES: tuple[models.Campus, ...] = (
	models.Campus(id="GCTU", code="GCTU", name="Ghana Communication Technology University", location="Accra"),
	models.Campus(id="UG", code="UG", name="University of Ghana", location="Accra"),
	models.Campus(id="KNUST", code="KNUST", name="Kwame Nkrumah University of Science and Technology", location="Kumasi"),
	models.Campus(id="UCC", code="UCC", name="University of Cape Coast", location="Cape Coast"),
	models.Campus(id="UPSA", code="UPSA", name="University of Professional Studies", location="Accra"),
	models.Campus(id="UENR", code="UENR", name="University of Energy and Natural Resources", location="Sunyani"),
	models.Campus(id="UMaT", code="UMaT", name="University of Mines and Technology", location="Tarkwa"),
	models.Campus(id="UDS", code="UDS", name="University for Development Studies", location="Tamale"),
)

ALL_CAMPUSES = "all"


async def ensure_seeded(storage: StorageAdapter) -> int:
	"""Insert any default campus missing from storage; returns how many were added."""
	added = 0
	for campus in DEFAULT_CAMPUSES:
		if await storage.get_by_id(CAMPUSES, campus.id) is None:
			await storage.insert(CAMPUSES, campus.to_record())
			added += 1
	if added:
		LOGGER.info("campuses_seeded", extra={"added": added})
	return added


async def list_campuses(storage: StorageAdapter) -> list[models.Campus]:
	records = await storage.scan(CAMPUSES)
	campuses = [models.Campus.model_validate(record) for record in records]
	campuses.sort(key=lambda campus: campus.name)
	return campuses


async def known_campus_ids(storage: StorageAdapter) -> list[str]:
	"""Campus ids accepted as feed filters, ``General`` first."""
	ids = sorted({str(record["id"]) for record in await storage.scan(CAMPUSES) if record.get("id")})
	return [models.GENERAL_CAMPUS, *[campus_id for campus_id in ids if campus_id != models.GENERAL_CAMPUS]]


async def resolve_campus_filter(storage: StorageAdapter, campus: str | None) -> list[str]:
	"""Expand an optional campus filter into the campus ids to read.

	``None``, empty and ``all`` mean every campus; anything else must be known.
	"""
	known = await known_campus_ids(storage)
	if campus is None or campus.strip() in ("", ALL_CAMPUSES):
		return known
	campus = campus.strip()
	if campus not in known:
		raise InvalidFilter(f"Unknown campus: {campus}")
	return [campus]


__all__ = [
	"ALL_CAMPUSES",
	"DEFAULT_CAMPUSES",
	"ensure_seeded",
	"known_campus_ids",
	"list_campuses",
	"resolve_campus_filter",
]
