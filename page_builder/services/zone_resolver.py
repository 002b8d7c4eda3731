# services/zone_resolver.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from page_builder.db.database import DataBase
from page_builder.db.enums import ContentType, PlacementOrigin
from page_builder.db.schemas.content import CustomContent
from page_builder.db.schemas.placement import ResolvedPlacement
from page_builder.db.schemas.resolved import PlacementRecord, ResolvedZone
from page_builder.db.schemas.zone import ZoneRead
from page_builder.errors import NotFound, UpstreamUnavailable
from page_builder.services.auto_fill import AutoFillResolver, exclusions_for
from page_builder.services.content_repository import ContentRepository, attach_content
from page_builder.utils.clock import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


class ZoneResolver:
	"""
	Merges a zone's manual placements with auto-filled content.

	Valid placements come first in position order; auto-fill tops the zone up
	to ``max_items`` without repeating anything placed manually. Read-only.
	"""

	def __init__(
		self,
		database: DataBase,
		repository: ContentRepository,
		auto_fill: Optional[AutoFillResolver] = None,
	) -> None:
		self._database = database
		self._repository = repository
		self._auto_fill = auto_fill or AutoFillResolver(repository)

	async def resolve_zone(self, zone_id: UUID, now: Optional[datetime] = None) -> ResolvedZone:
		zone = await self._database.get_zone(zone_id)
		if zone is None:
			raise NotFound("Zone not found.")
		return await self.resolve(zone, now=now)

	async def resolve(self, zone: ZoneRead, now: Optional[datetime] = None) -> ResolvedZone:
		now = as_naive_utc(now) if now is not None else utcnow()

		placements = await self._database.list_placements(zone.id)
		valid = [p for p in placements if p.is_visible(now)]
		degraded = False
		try:
			attached = await attach_content(valid, self._repository, timeout=self._auto_fill.timeout)
		except UpstreamUnavailable as exc:
			# Custom payloads need no lookup; article and video placements still hold their slots.
			logger.warning("Content lookup unavailable for zone %s, serving custom placements only: %s", zone.id, exc)
			degraded = True
			attached = [ResolvedPlacement(**p.model_dump()) for p in valid]

		records: List[PlacementRecord] = []
		for placement in attached:
			record = self._record(placement)
			if record is None:
				logger.debug("Placement %s in zone %s has no resolvable content", placement.id, zone.id)
				continue
			records.append(record)

		remaining = max(0, zone.max_items - len(valid))
		rule = zone.auto_fill_rule
		if rule is not None and remaining > 0 and not degraded:
			excluded = exclusions_for(
				rule.source,
				(p.article_id for p in valid if p.article_id),
				(p.video_id for p in valid if p.video_id),
			)
			try:
				items = await self._auto_fill.resolve(rule, excluded, remaining, now=now)
			except UpstreamUnavailable as exc:
				logger.warning("Auto-fill unavailable for zone %s, serving manual placements only: %s", zone.id, exc)
				degraded = True
				items = []
			records.extend(PlacementRecord(origin=PlacementOrigin.AUTO, content=item) for item in items[:remaining])

		return ResolvedZone(
			zone=zone,
			content=[r.content for r in records],
			records=records,
			auto_fill_degraded=degraded,
		)

	def _record(self, placement: ResolvedPlacement) -> Optional[PlacementRecord]:
		if placement.content_type == ContentType.ARTICLE:
			content = placement.article
		elif placement.content_type == ContentType.VIDEO:
			content = placement.video
		elif placement.custom_content is not None:
			content = CustomContent(placement_id=placement.id, data=placement.custom_content)
		else:
			content = None
		if content is None:
			return None
		return PlacementRecord(
			origin=PlacementOrigin.PINNED if placement.is_pinned else PlacementOrigin.MANUAL,
			placement_id=placement.id,
			position=placement.position,
			content=content,
		)
