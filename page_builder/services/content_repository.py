# services/content_repository.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Iterable, Optional, Protocol, Sequence, TypeVar
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from page_builder.config import Settings
from page_builder.db.database import DataBase
from page_builder.db.enums import ContentSource, ContentType, SortDirection, SortField
from page_builder.db.schemas.auto_fill import AutoFillFilters
from page_builder.db.schemas.content import ArticleSummary, ContentSearchResult, VideoSummary
from page_builder.db.schemas.placement import PlacementRead, ResolvedPlacement
from page_builder.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ContentRepository(Protocol):
    """Read access to published articles and videos."""

    async def query(
        self,
        source: ContentSource,
        *,
        filters: AutoFillFilters,
        published_after: Optional[datetime],
        sort: SortField,
        order: SortDirection,
        skip: int,
        limit: int,
    ) -> list[ArticleSummary] | list[VideoSummary]: ...

    async def fetch_articles(self, ids: Iterable[UUID]) -> dict[UUID, ArticleSummary]: ...

    async def fetch_videos(self, ids: Iterable[UUID]) -> dict[UUID, VideoSummary]: ...

    async def search(
        self,
        text: str = "",
        *,
        source: Optional[ContentSource] = None,
        category_id: Optional[UUID] = None,
        limit: int = 20,
    ) -> ContentSearchResult: ...


class SqlContentRepository:
    """ContentRepository backed by the content tables of the page builder database."""

    def __init__(self, database: DataBase) -> None:
        self._database = database

    async def query(
        self,
        source: ContentSource,
        *,
        filters: AutoFillFilters,
        published_after: Optional[datetime],
        sort: SortField,
        order: SortDirection,
        skip: int,
        limit: int,
    ) -> list[ArticleSummary] | list[VideoSummary]:
        if source == ContentSource.VIDEOS:
            return await self._database.query_videos(
                published_after=published_after, sort=sort, order=order, skip=skip, limit=limit,
            )
        return await self._database.query_articles(
            filters=filters, published_after=published_after, sort=sort, order=order, skip=skip, limit=limit,
        )

    async def fetch_articles(self, ids: Iterable[UUID]) -> dict[UUID, ArticleSummary]:
        return await self._database.get_articles_by_ids(ids)

    async def fetch_videos(self, ids: Iterable[UUID]) -> dict[UUID, VideoSummary]:
        return await self._database.get_videos_by_ids(ids)

    async def search(
        self,
        text: str = "",
        *,
        source: Optional[ContentSource] = None,
        category_id: Optional[UUID] = None,
        limit: int = 20,
    ) -> ContentSearchResult:
        return await self._database.search_content(text, source=source, category_id=category_id, limit=limit)


async def bounded(call: Awaitable[T], timeout: Optional[float], what: str) -> T:
    """Await a content repository call, reporting a stall or a store failure as ``UpstreamUnavailable``."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("%s timed out after %.1fs", what, timeout)
        raise UpstreamUnavailable(f"{what} timed out after {timeout}s.") from exc
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("%s failed: %r", what, exc)
        raise UpstreamUnavailable(f"{what} failed.") from exc


async def attach_content(
    placements: Sequence[PlacementRead],
    repository: ContentRepository,
    *,
    timeout: Optional[float] = None,
) -> list[ResolvedPlacement]:
    """Pair each placement with its article or video, two batched lookups in total."""
    if timeout is None:
        timeout = Settings().content_query_timeout
    article_ids = [p.article_id for p in placements if p.content_type == ContentType.ARTICLE and p.article_id]
    video_ids = [p.video_id for p in placements if p.content_type == ContentType.VIDEO and p.video_id]
    articles = await bounded(repository.fetch_articles(article_ids), timeout, "Article lookup") if article_ids else {}
    videos = await bounded(repository.fetch_videos(video_ids), timeout, "Video lookup") if video_ids else {}

    return [
        ResolvedPlacement(
            **p.model_dump(),
            article=articles.get(p.article_id) if p.article_id else None,
            video=videos.get(p.video_id) if p.video_id else None,
        )
        for p in placements
    ]
