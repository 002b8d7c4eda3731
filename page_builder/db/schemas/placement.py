# db/schemas/placement.py
import uuid
from datetime import datetime
from typing import Any, Optional
from pydantic import field_validator
from page_builder.db.enums import ContentType
from page_builder.db.schemas._base import OrmModel
from page_builder.db.schemas.content import ArticleSummary, VideoSummary
from page_builder.utils.clock import as_naive_utc
from page_builder.utils.sentinels import Missing

class PlacementBase(OrmModel):
    content_type: ContentType
    article_id: Optional[uuid.UUID] = None
    video_id: Optional[uuid.UUID] = None
    custom_content: Optional[dict[str, Any]] = None
    is_pinned: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_naive_utc(value)

class PlacementCreate(PlacementBase):
    position: Optional[int] = None
    created_by_id: Optional[uuid.UUID] = None

class PlacementUpdate(OrmModel):
    id: uuid.UUID
    is_pinned: bool | Missing = Missing()
    start_date: datetime | Missing | None = Missing()
    end_date: datetime | Missing | None = Missing()
    custom_content: dict[str, Any] | Missing | None = Missing()

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_utc(cls, value: Any) -> Any:
        if isinstance(value, datetime):
            return as_naive_utc(value)
        return value

class PlacementRead(PlacementBase):
    id: uuid.UUID
    zone_id: uuid.UUID
    position: int
    created_by_id: Optional[uuid.UUID] = None
    created_at: datetime

    @property
    def content_id(self) -> Optional[uuid.UUID]:
        return self.article_id or self.video_id

    def is_visible(self, now: datetime) -> bool:
        if self.start_date is not None and self.start_date > now:
            return False
        if self.end_date is not None and self.end_date < now:
            return False
        return True

class ResolvedPlacement(PlacementRead):
    """A placement together with the content it references."""
    article: Optional[ArticleSummary] = None
    video: Optional[VideoSummary] = None
