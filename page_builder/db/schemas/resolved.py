# db/schemas/resolved.py
import uuid
from typing import Optional
from page_builder.db.enums import PlacementOrigin, ZoneType
from page_builder.db.schemas._base import OrmModel
from page_builder.db.schemas.content import ResolvedContent
from page_builder.db.schemas.page import PageRead
from page_builder.db.schemas.zone import ZoneRead

class PlacementRecord(OrmModel):
    origin: PlacementOrigin
    placement_id: Optional[uuid.UUID] = None
    position: Optional[int] = None
    content: ResolvedContent

    @property
    def is_pinned(self) -> bool:
        return self.origin == PlacementOrigin.PINNED

class ResolvedZone(OrmModel):
    zone: ZoneRead
    content: list[ResolvedContent] = []
    records: list[PlacementRecord] = []
    auto_fill_degraded: bool = False

class ZoneContent(OrmModel):
    """What the renderer receives for one zone."""
    zone_type: ZoneType
    content: list[ResolvedContent] = []
    placements: list[PlacementRecord] = []

class ComposedPage(OrmModel):
    page: PageRead
    zones: list[ResolvedZone] = []
