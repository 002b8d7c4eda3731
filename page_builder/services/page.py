# services/page.py
from __future__ import annotations

from uuid import UUID
from typing import Dict, List, Optional

from page_builder.db.database import DataBase
from page_builder.db.enums import PageType
from page_builder.db.schemas.page import PageCreate, PageRead, PageUpdate
from page_builder.db.schemas.zone import ZoneCreate, ZoneRead, ZoneUpdate
from page_builder.db.schemas.zone_definition import ZoneDefinitionCreate, ZoneDefinitionRead
from page_builder.errors import NotFound
from page_builder.services.audit_log import AuditLogService, instrument_service_class


class PageService:
    """
    Administration of pages, zone definitions and page zones.
    This service does **not** use sessions or ORM models directly, only the DataBase facade.
    Caches ZoneDefinitionRead DTOs; definitions are effectively immutable once created.
    """

    def __init__(self, database: DataBase, audit: Optional[AuditLogService] = None) -> None:
        self._database = database
        self._audit = audit
        self._definitions_by_id: Dict[UUID, ZoneDefinitionRead] = {}
        self._definition_index: Dict[str, UUID] = {}

    # -----------------
    # Pages
    # -----------------
    async def get_page_by_id(self, page_id: UUID) -> Optional[PageRead]:
        return await self._database.get_page_by_id(page_id)

    async def get_page_by_slug(self, slug: str) -> Optional[PageRead]:
        return await self._database.get_page_by_slug(slug)

    async def list_pages(self, page_type: Optional[PageType] = None) -> List[PageRead]:
        return await self._database.list_pages(page_type)

    async def create_page(self, payload: PageCreate) -> PageRead:
        return await self._database.create_page(payload)

    async def update_page(self, payload: PageUpdate) -> PageRead:
        return await self._database.update_page(payload)

    async def delete_page(self, page_id: UUID) -> None:
        await self._database.delete_page(page_id)

    # -----------------
    # Zone definitions
    # -----------------
    async def get_zone_definition(self, definition_id: UUID) -> Optional[ZoneDefinitionRead]:
        definition = self._definitions_by_id.get(definition_id)
        if definition:
            return definition
        definition = await self._database.get_zone_definition(definition_id)
        if definition:
            self._cache_definition(definition)
        return definition

    async def get_zone_definition_by_slug(self, slug: str) -> Optional[ZoneDefinitionRead]:
        did = self._definition_index.get(slug)
        if did and did in self._definitions_by_id:
            return self._definitions_by_id[did]
        definition = await self._database.get_zone_definition_by_slug(slug)
        if definition:
            self._cache_definition(definition)
        return definition

    async def list_zone_definitions(self) -> List[ZoneDefinitionRead]:
        definitions = await self._database.list_zone_definitions()
        for d in definitions:
            self._cache_definition(d)
        return definitions

    async def create_zone_definition(self, payload: ZoneDefinitionCreate) -> ZoneDefinitionRead:
        definition = await self._database.create_zone_definition(payload)
        self._cache_definition(definition)
        return definition

    # -----------------
    # Zones
    # -----------------
    async def get_zone(self, zone_id: UUID) -> Optional[ZoneRead]:
        return await self._database.get_zone(zone_id)

    async def list_zones(self, page_id: UUID) -> List[ZoneRead]:
        if await self._database.get_page_by_id(page_id) is None:
            raise NotFound("Page not found.")
        return await self._database.list_zones_by_page(page_id)

    async def add_zone(self, payload: ZoneCreate) -> ZoneRead:
        return await self._database.create_zone(payload)

    async def update_zone(self, payload: ZoneUpdate) -> ZoneRead:
        return await self._database.update_zone(payload)

    async def delete_zone(self, page_id: UUID, zone_id: UUID) -> None:
        await self._database.delete_zone(zone_id, page_id=page_id)

    # -----------------
    # Internal
    # -----------------
    def _cache_definition(self, definition: ZoneDefinitionRead) -> None:
        self._definitions_by_id[definition.id] = definition
        self._definition_index[definition.slug] = definition.id


instrument_service_class(
    PageService,
    prefix="services.page",
    exclude={
        "get_page_by_id", "get_page_by_slug", "list_pages",
        "get_zone_definition", "get_zone_definition_by_slug", "list_zone_definitions",
        "get_zone", "list_zones",
    },
)
