# db/schemas/auto_fill.py
import uuid
from typing import Optional
from pydantic import Field
from page_builder.db.enums import ContentSource, MaxAge, SortDirection, SortField
from page_builder.db.schemas._base import CamelModel

class AutoFillFilters(CamelModel):
    category_slug: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    is_featured: Optional[bool] = None
    is_breaking: Optional[bool] = None
    tags: list[str] = []
    max_age: Optional[MaxAge] = None

class AutoFillRule(CamelModel):
    """Declarative content query stored on a zone."""
    source: ContentSource
    filters: AutoFillFilters = Field(default_factory=AutoFillFilters)
    sort: Optional[SortField] = None
    order: SortDirection = SortDirection.DESC
    limit: int = Field(default=10, ge=0)
    skip: int = Field(default=0, ge=0)

    @property
    def sort_field(self) -> SortField:
        if self.sort is not None:
            return self.sort
        if self.source == ContentSource.VIDEOS:
            return SortField.CREATED_AT
        return SortField.PUBLISHED_AT

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
