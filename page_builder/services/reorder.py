# services/reorder.py
from __future__ import annotations

import logging
from typing import Any, List, Optional
from uuid import UUID

from page_builder.db.database import DataBase
from page_builder.db.schemas.placement import ResolvedPlacement
from page_builder.errors import ValidationError
from page_builder.services.audit_log import AuditLogService, instrument_service_class
from page_builder.services.content_repository import ContentRepository, attach_content

logger = logging.getLogger(__name__)


def parse_uuid(value: Any, field: str) -> UUID:
	if isinstance(value, UUID):
		return value
	if isinstance(value, str):
		try:
			return UUID(value)
		except ValueError:
			pass
	raise ValidationError(f"{field} must be a UUID, got {value!r}.")


class ReorderCoordinator:
	"""
	Bulk position rewrites for one zone.

	A reorder is validated in full before anything is written; the rewrite
	itself runs in two phases (temporary offset, then final positions) inside
	one transaction, so the ``(zone, position)`` uniqueness holds throughout.
	"""

	def __init__(
		self,
		database: DataBase,
		repository: ContentRepository,
		audit: Optional[AuditLogService] = None,
	) -> None:
		self._database = database
		self._repository = repository
		self._audit = audit

	async def reorder(self, page_id: UUID | str, zone_id: UUID | str, placement_ids: Any) -> List[ResolvedPlacement]:
		if not isinstance(placement_ids, (list, tuple)):
			raise ValidationError("placementIds must be an array of UUIDs.")
		ids = [parse_uuid(pid, "placementIds[]") for pid in placement_ids]
		page_id = parse_uuid(page_id, "pageId")
		zone_id = parse_uuid(zone_id, "zoneId")

		placements = await self._database.reorder_placements(zone_id, ids, page_id=page_id)
		logger.info("Zone %s reordered (%d placements)", zone_id, len(placements))
		return await attach_content(placements, self._repository)

	async def compact(self, zone_id: UUID) -> List[ResolvedPlacement]:
		placements = await self._database.compact_placements(zone_id)
		return await attach_content(placements, self._repository)

	async def resort_by_publish_date(self, zone_id: UUID) -> List[ResolvedPlacement]:
		placements = await self._database.resort_placements_by_publish_date(zone_id)
		return await attach_content(placements, self._repository)


instrument_service_class(ReorderCoordinator, prefix="services.reorder")
