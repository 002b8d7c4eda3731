# db/schemas/content.py
import uuid
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import Field
from page_builder.db.schemas._base import OrmModel

class CategoryRef(OrmModel):
    id: uuid.UUID
    name: str
    slug: str
    color: str

class TagRef(OrmModel):
    id: uuid.UUID
    name: str
    slug: str

class ArticleSummary(OrmModel):
    kind: Literal["article"] = "article"
    id: uuid.UUID
    title: str
    slug: str
    excerpt: str = ""
    image_url: str = ""
    published_at: datetime
    created_at: datetime
    is_featured: bool = False
    is_breaking: bool = False
    category: Optional[CategoryRef] = None
    tags: list[TagRef] = []

class VideoSummary(OrmModel):
    kind: Literal["video"] = "video"
    id: uuid.UUID
    title: str
    url: str = ""
    thumbnail: str = ""
    duration: str = ""
    category: str = ""
    created_at: datetime

class CustomContent(OrmModel):
    kind: Literal["custom"] = "custom"
    placement_id: uuid.UUID
    data: dict[str, Any]

ContentSummary = Annotated[Union[ArticleSummary, VideoSummary], Field(discriminator="kind")]
ResolvedContent = Annotated[Union[ArticleSummary, VideoSummary, CustomContent], Field(discriminator="kind")]

class ContentSearchResult(OrmModel):
    articles: list[ArticleSummary] = []
    videos: list[VideoSummary] = []
