# services/page_composer.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from page_builder.db.database import DataBase
from page_builder.db.schemas.resolved import ComposedPage, ZoneContent
from page_builder.errors import NotFound
from page_builder.services.zone_resolver import ZoneResolver

logger = logging.getLogger(__name__)


class PageComposer:
	"""Resolves every zone of a page for rendering (by slug) or editing (by id)."""

	def __init__(self, database: DataBase, zone_resolver: ZoneResolver) -> None:
		self._database = database
		self._zone_resolver = zone_resolver

	async def get_page_zones_content(self, slug: str, now: Optional[datetime] = None) -> Dict[str, ZoneContent]:
		"""
		Render view: enabled zones of an active page keyed by zone definition slug,
		in ascending sort order. A missing or inactive page yields an empty dict.
		"""
		page = await self._database.get_page_by_slug(slug, active_only=True)
		if page is None:
			logger.debug("No active page with slug %r", slug)
			return {}

		out: Dict[str, ZoneContent] = {}
		for zone in await self._database.list_zones_by_page(page.id, enabled_only=True):
			resolved = await self._zone_resolver.resolve(zone, now=now)
			out[zone.zone_definition.slug] = ZoneContent(
				zone_type=zone.zone_definition.zone_type,
				content=resolved.content,
				placements=resolved.records,
			)
		return out

	async def compose_page(self, page_id: UUID, now: Optional[datetime] = None) -> ComposedPage:
		"""Editor view: the page with all of its zones, disabled ones included."""
		page = await self._database.get_page_by_id(page_id)
		if page is None:
			raise NotFound("Page not found.")
		zones = await self._database.list_zones_by_page(page.id)
		return ComposedPage(
			page=page,
			zones=[await self._zone_resolver.resolve(zone, now=now) for zone in zones],
		)
