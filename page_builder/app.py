# app.py
from typing import Optional

from page_builder.db.database import DataBase
from page_builder.services.audit_log import AuditLogService
from page_builder.services.auto_fill import AutoFillResolver
from page_builder.services.content_repository import ContentRepository, SqlContentRepository
from page_builder.services.page import PageService
from page_builder.services.page_composer import PageComposer
from page_builder.services.placement import PlacementService
from page_builder.services.reorder import ReorderCoordinator
from page_builder.services.zone_resolver import ZoneResolver


class PageBuilder:
    """Wires the services around one database and one content repository."""

    def __init__(
        self,
        database: Optional[DataBase] = None,
        repository: Optional[ContentRepository] = None,
        *,
        audit: bool = True,
    ) -> None:
        self.database = database or DataBase()
        self.repository = repository or SqlContentRepository(self.database)
        self.audit = AuditLogService(self.database) if audit else None

        self.auto_fill = AutoFillResolver(self.repository)
        self.zone_resolver = ZoneResolver(self.database, self.repository, self.auto_fill)
        self.composer = PageComposer(self.database, self.zone_resolver)
        self.pages = PageService(self.database, self.audit)
        self.placements = PlacementService(self.database, self.repository, self.audit)
        self.reorder = ReorderCoordinator(self.database, self.repository, self.audit)

    async def close(self) -> None:
        await self.database.dispose()
