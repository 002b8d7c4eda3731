# services/placement.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from page_builder.db.database import DataBase
from page_builder.db.enums import ContentSource, ContentType
from page_builder.db.schemas.content import ContentSearchResult
from page_builder.db.schemas.placement import PlacementCreate, PlacementRead, PlacementUpdate, ResolvedPlacement
from page_builder.errors import InvalidReference, NotFound, PageBuilderError, ValidationError
from page_builder.services.audit_log import AuditLogService, instrument_service_class
from page_builder.services.content_repository import ContentRepository, attach_content

logger = logging.getLogger(__name__)


class PlacementService:
	"""
	Editorial placement operations.
	This service does **not** use sessions or ORM models directly, only the DataBase facade;
	position bookkeeping happens inside the facade's per-zone transactions.
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

	async def create_placement(self, zone_id: UUID, payload: PlacementCreate) -> ResolvedPlacement:
		self._check_reference(payload)
		if payload.start_date and payload.end_date and payload.start_date > payload.end_date:
			raise ValidationError("start_date must not be after end_date.")
		if payload.created_by_id is None and self._audit is not None:
			payload = payload.model_copy(update={"created_by_id": self._audit.current_actor()})

		created = await self._database.create_placement(zone_id, payload)
		return (await attach_content([created], self._repository))[0]

	async def delete_placement(self, zone_id: UUID, placement_id: UUID) -> PlacementRead:
		return await self._database.delete_placement(zone_id, placement_id)

	async def update_placement(self, zone_id: UUID, payload: PlacementUpdate) -> ResolvedPlacement:
		updated = await self._database.update_placement(zone_id, payload)
		return (await attach_content([updated], self._repository))[0]

	async def get_placement(self, placement_id: UUID) -> Optional[ResolvedPlacement]:
		placement = await self._database.get_placement(placement_id)
		if placement is None:
			return None
		return (await attach_content([placement], self._repository))[0]

	async def list_placements(self, zone_id: UUID) -> List[ResolvedPlacement]:
		if await self._database.get_zone(zone_id) is None:
			raise NotFound("Zone not found.")
		return await attach_content(await self._database.list_placements(zone_id), self._repository)

	async def search_content(
		self,
		text: str = "",
		*,
		source: Optional[ContentSource] = None,
		category_id: Optional[UUID] = None,
		limit: int = 20,
	) -> ContentSearchResult:
		return await self._repository.search(text, source=source, category_id=category_id, limit=limit)

	async def add_article_to_zones(self, article_id: UUID, category_ids: Iterable[UUID] = ()) -> List[UUID]:
		"""
		Put a freshly published article at the top of every article zone on
		the homepage and on the pages of its categories.

		Zones already holding the article are left alone. A zone that fails
		is logged and skipped. Returns the ids of the zones that got it.
		"""
		if article_id not in await self._repository.fetch_articles([article_id]):
			raise NotFound("Article not found.")

		zones = await self._database.list_publish_target_zones(list(category_ids))
		populated: List[UUID] = []
		for zone in zones:
			try:
				created = await self._database.create_placement(
					zone.id,
					PlacementCreate(
						content_type=ContentType.ARTICLE,
						article_id=article_id,
						position=0,
						created_by_id=self._audit.current_actor() if self._audit else None,
					),
					skip_if_present=True,
				)
			except (PageBuilderError, SQLAlchemyError) as exc:
				logger.warning("Could not add article %s to zone %s: %r", article_id, zone.id, exc)
				continue
			if created is not None:
				populated.append(zone.id)

		logger.info("Article %s added to %d of %d zones", article_id, len(populated), len(zones))
		return populated

	def _check_reference(self, payload: PlacementCreate) -> None:
		if payload.content_type == ContentType.ARTICLE:
			ok = payload.article_id is not None and payload.video_id is None and payload.custom_content is None
		elif payload.content_type == ContentType.VIDEO:
			ok = payload.video_id is not None and payload.article_id is None and payload.custom_content is None
		else:
			ok = payload.custom_content is not None and payload.article_id is None and payload.video_id is None
		if not ok:
			raise InvalidReference(
				f"A {payload.content_type} placement must reference exactly one "
				f"{'payload' if payload.content_type == ContentType.CUSTOM else payload.content_type.lower()}."
			)


instrument_service_class(
	PlacementService,
	prefix="services.placement",
	exclude={"get_placement", "list_placements", "search_content"},
)
