"""Shared fixtures: a throwaway SQLite database and content/page factories."""

import uuid
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

import pytest
from sqlalchemy import select

from page_builder.app import PageBuilder
from page_builder.db.database import DataBase
from page_builder.db.enums import ContentType, PageType, ZoneType
from page_builder.db.models.article import Article
from page_builder.db.models.category import Category
from page_builder.db.models.tag import Tag
from page_builder.db.models.video import Video
from page_builder.db.schemas.auto_fill import AutoFillRule
from page_builder.db.schemas.content import ArticleSummary, CategoryRef, TagRef, VideoSummary
from page_builder.db.schemas.page import PageCreate, PageRead
from page_builder.db.schemas.placement import PlacementCreate, ResolvedPlacement
from page_builder.db.schemas.zone import ZoneCreate, ZoneRead
from page_builder.db.schemas.zone_definition import ZoneDefinitionCreate
from page_builder.utils.clock import utcnow

NOW = utcnow().replace(microsecond=0)


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


@pytest.fixture
async def database(tmp_path) -> DataBase:
    """A fresh SQLite database with all tables created."""
    db = DataBase(f"sqlite+aiosqlite:///{tmp_path / 'pages.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def builder(database: DataBase) -> PageBuilder:
    return PageBuilder(database)


@pytest.fixture
def make_category(database: DataBase):
    async def _make(name: str = "Markets") -> CategoryRef:
        async with database.session() as s:
            row = Category(name=name, slug=f"{name.lower()}-{_suffix()}", color="#0055aa")
            s.add(row)
            await s.flush()
            return CategoryRef.model_validate(row)

    return _make


@pytest.fixture
def make_tag(database: DataBase):
    async def _make(slug: str) -> TagRef:
        async with database.session() as s:
            row = Tag(name=slug.title(), slug=slug)
            s.add(row)
            await s.flush()
            return TagRef.model_validate(row)

    return _make


@pytest.fixture
def make_article(database: DataBase):
    async def _make(
        title: str = "Story",
        *,
        published_at: Optional[datetime] = None,
        category_id: Optional[uuid.UUID] = None,
        tags: Sequence[TagRef] = (),
        is_featured: bool = False,
        is_breaking: bool = False,
    ) -> ArticleSummary:
        async with database.session() as s:
            row = Article(
                title=title,
                slug=f"{title.lower().replace(' ', '-')}-{_suffix()}",
                excerpt=f"{title} excerpt",
                published_at=published_at or NOW,
                created_at=published_at or NOW,
                category_id=category_id,
                is_featured=is_featured,
                is_breaking=is_breaking,
            )
            if tags:
                row.tags = list((await s.execute(select(Tag).where(Tag.id.in_([t.id for t in tags])))).scalars())
            s.add(row)
            await s.flush()
            article_id = row.id
        return (await database.get_articles_by_ids([article_id]))[article_id]

    return _make


@pytest.fixture
def make_video(database: DataBase):
    async def _make(title: str = "Clip", *, created_at: Optional[datetime] = None) -> VideoSummary:
        async with database.session() as s:
            row = Video(title=title, url=f"https://video.example/{_suffix()}", created_at=created_at or NOW)
            s.add(row)
            await s.flush()
            return VideoSummary.model_validate(row)

    return _make


@pytest.fixture
def make_page(builder: PageBuilder):
    async def _make(
        slug: Optional[str] = None,
        *,
        page_type: PageType = PageType.CUSTOM,
        is_active: bool = True,
        category_id: Optional[uuid.UUID] = None,
    ) -> PageRead:
        slug = slug or f"page-{_suffix()}"
        return await builder.pages.create_page(PageCreate(
            name=slug.title(),
            slug=slug,
            page_type=page_type,
            is_active=is_active,
            category_id=category_id,
        ))

    return _make


@pytest.fixture
def make_zone(builder: PageBuilder):
    async def _make(
        page: PageRead,
        *,
        zone_type: ZoneType = ZoneType.ARTICLE_GRID,
        max_items: int = 10,
        rule: Optional[dict[str, Any] | AutoFillRule] = None,
        is_enabled: bool = True,
        slug: Optional[str] = None,
        sort_order: Optional[int] = None,
    ) -> ZoneRead:
        definition = await builder.pages.create_zone_definition(ZoneDefinitionCreate(
            name=f"{zone_type.title()} zone",
            slug=slug or f"{zone_type.lower()}-{_suffix()}",
            zone_type=zone_type,
            max_items=max_items,
        ))
        return await builder.pages.add_zone(ZoneCreate(
            page_id=page.id,
            zone_definition_id=definition.id,
            is_enabled=is_enabled,
            sort_order=sort_order,
            auto_fill_rule=AutoFillRule.model_validate(rule) if isinstance(rule, dict) else rule,
        ))

    return _make


@pytest.fixture
def place_article(builder: PageBuilder):
    async def _place(
        zone: ZoneRead,
        article: ArticleSummary,
        *,
        position: Optional[int] = None,
        **fields: Any,
    ) -> ResolvedPlacement:
        return await builder.placements.create_placement(zone.id, PlacementCreate(
            content_type=ContentType.ARTICLE,
            article_id=article.id,
            position=position,
            **fields,
        ))

    return _place


@pytest.fixture
def hours_ago():
    def _at(hours: float) -> datetime:
        return NOW - timedelta(hours=hours)

    return _at


@pytest.fixture
def zone_positions(database: DataBase):
    """Current (placement id, position) pairs of a zone, ascending."""
    async def _positions(zone: ZoneRead) -> list[tuple[uuid.UUID, int]]:
        return [(p.id, p.position) for p in await database.list_placements(zone.id)]

    return _positions
