# db/database.py
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional, Any, Iterable, List, Sequence, Tuple

from sqlalchemy import select, func, update, delete, or_, and_, Row
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, contains_eager

from page_builder.config import Settings
from page_builder.db.enums import (
    ARTICLE_ZONE_TYPES, ContentSource, ContentType, PageType, SortDirection, SortField,
)
from page_builder.db.models._base import Base
from page_builder.db.models.category import Category
from page_builder.db.models.tag import Tag
from page_builder.db.models.article import Article
from page_builder.db.models.video import Video
from page_builder.db.models.page import Page
from page_builder.db.models.zone_definition import ZoneDefinition
from page_builder.db.models.zone import PageZone
from page_builder.db.models.placement import ContentPlacement
from page_builder.db.models.audit_log import AuditLog
from page_builder.db.schemas.audit_log import AuditLogCreate, AuditLogRead
from page_builder.db.schemas.auto_fill import AutoFillFilters
from page_builder.db.schemas.content import ArticleSummary, VideoSummary, ContentSearchResult
from page_builder.db.schemas.page import PageCreate, PageRead, PageUpdate
from page_builder.db.schemas.placement import PlacementCreate, PlacementRead, PlacementUpdate
from page_builder.db.schemas.zone import ZoneCreate, ZoneRead, ZoneUpdate
from page_builder.db.schemas.zone_definition import ZoneDefinitionCreate, ZoneDefinitionRead
from page_builder.errors import CrossScopeViolation, InvalidReference, NotFound, ValidationError
from page_builder.utils.sentinels import provided


class DataBase():
    """
    Async SQLAlchemy facade over pages, zones, placements and the content tables.

    Every public method opens its own session, so every method is one
    transaction: it either commits all of its writes or none of them.
    Usage:
        db = DataBase("postgresql+asyncpg://...")
        async with db.session() as s:
            ...

    Instances are independent; services receive the instance they work on.
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False, **engine_kwargs: Any) -> None:
        settings = Settings()
        url = url or settings.database_url
        engine_kwargs.setdefault("pool_pre_ping", True)
        self._engine: AsyncEngine = create_async_engine(url, echo=echo, **engine_kwargs)
        self._sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self._engine,
            expire_on_commit=False,
            autoflush=False,
        )
        self._temp_offset = settings.reorder_temp_offset

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Provides an AsyncSession with safe commit/rollback semantics.
        """
        session: AsyncSession = self._sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # --- schema management helpers ---

    async def create_all(self) -> None:
        """
        Create tables based on Base metadata. Use only in dev/tests; prefer Alembic in prod.
        """
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self._engine.dispose()

    # ---------------------------------
    # Content (read-only)
    # ---------------------------------

    async def query_articles(
        self,
        *,
        filters: AutoFillFilters,
        published_after: Optional[datetime],
        sort: SortField,
        order: SortDirection,
        skip: int,
        limit: int,
    ) -> list[ArticleSummary]:
        """
        Filtered, ordered window over articles.

        All filters are conjunctive. Category id and category slug are both
        applied when both are present; tags match any of the given slugs.
        Ties on the sort column are broken by id so windows are stable.
        """
        limit = max(0, int(limit))
        skip = max(0, int(skip))
        if limit == 0:
            return []

        stmt = select(Article)
        if filters.category_id is not None:
            stmt = stmt.where(Article.category_id == filters.category_id)
        if filters.category_slug:
            stmt = stmt.where(Article.category.has(Category.slug == filters.category_slug))
        if filters.is_featured is not None:
            stmt = stmt.where(Article.is_featured.is_(filters.is_featured))
        if filters.is_breaking is not None:
            stmt = stmt.where(Article.is_breaking.is_(filters.is_breaking))
        if filters.tags:
            stmt = stmt.where(Article.tags.any(Tag.slug.in_(filters.tags)))
        if published_after is not None:
            stmt = stmt.where(Article.published_at >= published_after)

        sort_col = {
            SortField.PUBLISHED_AT: Article.published_at,
            SortField.CREATED_AT: Article.created_at,
            SortField.TITLE: Article.title,
        }[sort]
        stmt = stmt.order_by(
            sort_col.desc() if order == SortDirection.DESC else sort_col.asc(),
            Article.id.asc(),
        ).offset(skip).limit(limit)

        async with self.session() as s:
            rows = (await s.execute(stmt)).scalars().all()
            return [ArticleSummary.model_validate(r) for r in rows]

    async def query_videos(
        self,
        *,
        published_after: Optional[datetime],
        sort: SortField,
        order: SortDirection,
        skip: int,
        limit: int,
    ) -> list[VideoSummary]:
        """Ordered window over videos; videos only carry a creation time."""
        limit = max(0, int(limit))
        skip = max(0, int(skip))
        if limit == 0:
            return []

        stmt = select(Video)
        if published_after is not None:
            stmt = stmt.where(Video.created_at >= published_after)
        sort_col = Video.title if sort == SortField.TITLE else Video.created_at
        stmt = stmt.order_by(
            sort_col.desc() if order == SortDirection.DESC else sort_col.asc(),
            Video.id.asc(),
        ).offset(skip).limit(limit)

        async with self.session() as s:
            rows = (await s.execute(stmt)).scalars().all()
        return [VideoSummary.model_validate(r) for r in rows]

    async def get_articles_by_ids(self, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, ArticleSummary]:
        ids = list({i for i in ids if i is not None})
        if not ids:
            return {}
        async with self.session() as s:
            rows = (await s.execute(select(Article).where(Article.id.in_(ids)))).scalars().all()
            return {r.id: ArticleSummary.model_validate(r) for r in rows}

    async def get_videos_by_ids(self, ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, VideoSummary]:
        ids = list({i for i in ids if i is not None})
        if not ids:
            return {}
        async with self.session() as s:
            rows = (await s.execute(select(Video).where(Video.id.in_(ids)))).scalars().all()
        return {r.id: VideoSummary.model_validate(r) for r in rows}

    async def search_content(
        self,
        text: str = "",
        *,
        source: Optional[ContentSource] = None,
        category_id: Optional[uuid.UUID] = None,
        limit: int = 20,
    ) -> ContentSearchResult:
        """Case-insensitive search used by the editor's placement picker, newest first."""
        limit = max(0, int(limit))
        pattern = f"%{text.strip()}%" if text and text.strip() else None
        result = ContentSearchResult()
        if limit == 0:
            return result

        async with self.session() as s:
            if source in (None, ContentSource.ARTICLES):
                stmt = select(Article)
                if pattern:
                    stmt = stmt.where(or_(
                        Article.title.ilike(pattern),
                        Article.excerpt.ilike(pattern),
                        Article.slug.ilike(pattern),
                    ))
                if category_id is not None:
                    stmt = stmt.where(Article.category_id == category_id)
                stmt = stmt.order_by(Article.published_at.desc(), Article.id.asc()).limit(limit)
                rows = (await s.execute(stmt)).scalars().all()
                result.articles = [ArticleSummary.model_validate(r) for r in rows]

            if source in (None, ContentSource.VIDEOS):
                stmt = select(Video)
                if pattern:
                    stmt = stmt.where(or_(Video.title.ilike(pattern), Video.category.ilike(pattern)))
                stmt = stmt.order_by(Video.created_at.desc(), Video.id.asc()).limit(limit)
                rows = (await s.execute(stmt)).scalars().all()
                result.videos = [VideoSummary.model_validate(r) for r in rows]

        return result

    # ---------------------------------
    # Pages
    # ---------------------------------

    async def get_page_by_id(self, page_id: uuid.UUID) -> Optional[PageRead]:
        """Fetch a page by its UUID."""
        if not page_id:
            return None
        async with self.session() as s:
            row = await s.get(Page, page_id)
        return PageRead.model_validate(row) if row is not None else None

    async def get_page_by_slug(self, slug: str, *, active_only: bool = False) -> Optional[PageRead]:
        """Fetch a page by slug; with ``active_only`` an inactive page reads as missing."""
        name = (slug or "").strip()
        if not name:
            return None
        async with self.session() as s:
            stmt = select(Page).where(Page.slug == name)
            if active_only:
                stmt = stmt.where(Page.is_active.is_(True))
            row = (await s.execute(stmt)).scalar_one_or_none()
        return PageRead.model_validate(row) if row is not None else None

    async def list_pages(self, page_type: Optional[PageType] = None) -> list[PageRead]:
        """List pages, most recently updated first."""
        async with self.session() as s:
            stmt = select(Page).order_by(Page.updated_at.desc(), Page.slug.asc())
            if page_type is not None:
                stmt = stmt.where(Page.page_type == page_type)
            rows = (await s.execute(stmt)).scalars().all()
        return [PageRead.model_validate(r) for r in rows]

    async def create_page(self, payload: PageCreate) -> PageRead:
        """
        Create a new page.

        Raises:
            ValidationError: if the slug is already taken.
            IntegrityError: on other constraint violations.
        """
        obj = Page(
            name=payload.name,
            slug=payload.slug,
            page_type=payload.page_type,
            category_id=payload.category_id,
            stock_symbol=payload.stock_symbol,
            is_active=payload.is_active,
        )
        async with self.session() as s:
            taken = await s.scalar(select(Page.id).where(Page.slug == payload.slug))
            if taken is not None:
                raise ValidationError(f"A page with slug {payload.slug!r} already exists.")
            s.add(obj)
            try:
                await s.flush()
            except IntegrityError:
                raise
            await s.refresh(obj)
            return PageRead.model_validate(obj)

    async def update_page(self, payload: PageUpdate) -> PageRead:
        """Partially update a page by id."""
        async with self.session() as s:
            db_obj = await s.get(Page, payload.id)
            if db_obj is None:
                raise NotFound("Page not found.")

            if provided(payload.slug) and payload.slug != db_obj.slug:
                taken = await s.scalar(
                    select(Page.id).where(Page.slug == payload.slug, Page.id != payload.id)
                )
                if taken is not None:
                    raise ValidationError(f"A page with slug {payload.slug!r} already exists.")
                db_obj.slug = payload.slug
            if provided(payload.name):
                db_obj.name = payload.name
            if provided(payload.page_type):
                db_obj.page_type = payload.page_type
            if provided(payload.category_id):
                db_obj.category_id = payload.category_id
            if provided(payload.stock_symbol):
                db_obj.stock_symbol = payload.stock_symbol
            if provided(payload.is_active):
                db_obj.is_active = payload.is_active

            await s.flush()
            await s.refresh(db_obj)
            return PageRead.model_validate(db_obj)

    async def delete_page(self, page_id: uuid.UUID) -> None:
        """Delete a page together with its zones and their placements."""
        async with self.session() as s:
            db_obj = await s.get(Page, page_id)
            if db_obj is None:
                raise NotFound("Page not found.")
            zone_ids = select(PageZone.id).where(PageZone.page_id == page_id).scalar_subquery()
            await s.execute(
                delete(ContentPlacement).where(ContentPlacement.zone_id.in_(zone_ids))
                .execution_options(synchronize_session=False)
            )
            await s.execute(
                delete(PageZone).where(PageZone.page_id == page_id)
                .execution_options(synchronize_session=False)
            )
            await s.execute(
                delete(Page).where(Page.id == page_id).execution_options(synchronize_session=False)
            )

    # ---------------------------------
    # Zone definitions
    # ---------------------------------

    async def get_zone_definition(self, definition_id: uuid.UUID) -> Optional[ZoneDefinitionRead]:
        async with self.session() as s:
            row = await s.get(ZoneDefinition, definition_id)
        return ZoneDefinitionRead.model_validate(row) if row is not None else None

    async def get_zone_definition_by_slug(self, slug: str) -> Optional[ZoneDefinitionRead]:
        async with self.session() as s:
            row = (await s.execute(
                select(ZoneDefinition).where(ZoneDefinition.slug == slug)
            )).scalar_one_or_none()
        return ZoneDefinitionRead.model_validate(row) if row is not None else None

    async def list_zone_definitions(self) -> list[ZoneDefinitionRead]:
        async with self.session() as s:
            rows = (await s.execute(select(ZoneDefinition).order_by(ZoneDefinition.name.asc()))).scalars().all()
        return [ZoneDefinitionRead.model_validate(r) for r in rows]

    async def create_zone_definition(self, payload: ZoneDefinitionCreate) -> ZoneDefinitionRead:
        """
        Create a reusable zone type.

        Raises:
            ValidationError: if the slug is already taken.
        """
        obj = ZoneDefinition(
            name=payload.name,
            slug=payload.slug,
            description=payload.description,
            zone_type=payload.zone_type,
            min_items=payload.min_items,
            max_items=payload.max_items,
            default_rule=payload.default_rule.to_storage() if payload.default_rule else None,
        )
        async with self.session() as s:
            taken = await s.scalar(select(ZoneDefinition.id).where(ZoneDefinition.slug == payload.slug))
            if taken is not None:
                raise ValidationError(f"A zone definition with slug {payload.slug!r} already exists.")
            s.add(obj)
            await s.flush()
            await s.refresh(obj)
            return ZoneDefinitionRead.model_validate(obj)

    # ---------------------------------
    # Zones
    # ---------------------------------

    async def _load_zone(self, s: AsyncSession, zone_id: uuid.UUID) -> Optional[PageZone]:
        stmt = (
            select(PageZone)
            .options(joinedload(PageZone.zone_definition))
            .where(PageZone.id == zone_id)
            .execution_options(populate_existing=True)
        )
        return (await s.execute(stmt)).unique().scalar_one_or_none()

    async def _lock_zone(self, s: AsyncSession, zone_id: uuid.UUID) -> Optional[Row]:
        """
        Row-lock the zone for the rest of the transaction.

        Every placement mutation takes this lock first, so mutations of one
        zone serialize and the last committed writer wins. Backends without
        row locks (SQLite) serialize writers on their own.
        """
        stmt = (
            select(PageZone.id, PageZone.page_id)
            .where(PageZone.id == zone_id)
            .with_for_update()
        )
        return (await s.execute(stmt)).one_or_none()

    async def get_zone(self, zone_id: uuid.UUID) -> Optional[ZoneRead]:
        async with self.session() as s:
            row = await self._load_zone(s, zone_id)
            return ZoneRead.model_validate(row) if row is not None else None

    async def list_zones_by_page(self, page_id: uuid.UUID, *, enabled_only: bool = False) -> list[ZoneRead]:
        """Zones of a page in ascending sort order."""
        async with self.session() as s:
            stmt = (
                select(PageZone)
                .options(joinedload(PageZone.zone_definition))
                .where(PageZone.page_id == page_id)
                .order_by(PageZone.sort_order.asc(), PageZone.id.asc())
            )
            if enabled_only:
                stmt = stmt.where(PageZone.is_enabled.is_(True))
            rows = (await s.execute(stmt)).unique().scalars().all()
            return [ZoneRead.model_validate(r) for r in rows]

    async def create_zone(self, payload: ZoneCreate) -> ZoneRead:
        """
        Add a zone definition to a page.

        A missing sort order puts the zone last; a missing rule falls back to
        the definition's default rule.

        Raises:
            NotFound: if the page or the zone definition does not exist.
            ValidationError: if the definition is already on the page.
        """
        async with self.session() as s:
            if await s.get(Page, payload.page_id) is None:
                raise NotFound("Page not found.")
            definition = await s.get(ZoneDefinition, payload.zone_definition_id)
            if definition is None:
                raise NotFound("Zone definition not found.")
            existing = await s.scalar(
                select(PageZone.id).where(
                    PageZone.page_id == payload.page_id,
                    PageZone.zone_definition_id == payload.zone_definition_id,
                )
            )
            if existing is not None:
                raise ValidationError("This zone is already added to the page.")

            sort_order = payload.sort_order
            if sort_order is None:
                last = await s.scalar(
                    select(func.max(PageZone.sort_order)).where(PageZone.page_id == payload.page_id)
                )
                sort_order = (last if last is not None else -1) + 1

            rule = payload.auto_fill_rule.to_storage() if payload.auto_fill_rule else definition.default_rule
            obj = PageZone(
                page_id=payload.page_id,
                zone_definition_id=definition.id,
                sort_order=sort_order,
                is_enabled=payload.is_enabled,
                custom_name=payload.custom_name,
                auto_fill_rule=rule,
            )
            s.add(obj)
            try:
                await s.flush()
            except IntegrityError:
                raise
            row = await self._load_zone(s, obj.id)
            return ZoneRead.model_validate(row)

    async def update_zone(self, payload: ZoneUpdate) -> ZoneRead:
        """Partially update a zone (name, enabled flag, sort order, auto-fill rule)."""
        async with self.session() as s:
            db_obj = await self._load_zone(s, payload.id)
            if db_obj is None:
                raise NotFound("Zone not found.")

            if provided(payload.custom_name):
                db_obj.custom_name = payload.custom_name
            if provided(payload.is_enabled):
                db_obj.is_enabled = payload.is_enabled
            if provided(payload.sort_order):
                db_obj.sort_order = payload.sort_order
            if provided(payload.auto_fill_rule):
                rule = payload.auto_fill_rule
                db_obj.auto_fill_rule = rule.to_storage() if rule is not None else None

            await s.flush()
            row = await self._load_zone(s, payload.id)
            return ZoneRead.model_validate(row)

    async def delete_zone(self, zone_id: uuid.UUID, *, page_id: Optional[uuid.UUID] = None) -> None:
        """
        Delete a zone and all of its placements.

        Raises:
            NotFound: if the zone does not exist.
            CrossScopeViolation: if ``page_id`` is given and the zone belongs to another page.
        """
        async with self.session() as s:
            zone_row = await self._lock_zone(s, zone_id)
            if zone_row is None:
                raise NotFound("Zone not found.")
            if page_id is not None and zone_row.page_id != page_id:
                raise CrossScopeViolation("Zone does not belong to this page.")
            await s.execute(
                delete(ContentPlacement).where(ContentPlacement.zone_id == zone_id)
                .execution_options(synchronize_session=False)
            )
            await s.execute(
                delete(PageZone).where(PageZone.id == zone_id).execution_options(synchronize_session=False)
            )

    async def list_publish_target_zones(self, category_ids: Sequence[uuid.UUID]) -> list[ZoneRead]:
        """
        Enabled article zones on the active homepage and on the active
        category pages of ``category_ids``.
        """
        category_ids = [c for c in category_ids if c is not None]
        page_filter = Page.page_type == PageType.HOMEPAGE
        if category_ids:
            page_filter = or_(
                page_filter,
                and_(Page.page_type == PageType.CATEGORY, Page.category_id.in_(category_ids)),
            )
        stmt = (
            select(PageZone)
            .join(Page, Page.id == PageZone.page_id)
            .join(ZoneDefinition, ZoneDefinition.id == PageZone.zone_definition_id)
            .options(contains_eager(PageZone.zone_definition))
            .where(
                Page.is_active.is_(True),
                PageZone.is_enabled.is_(True),
                ZoneDefinition.zone_type.in_(list(ARTICLE_ZONE_TYPES)),
                page_filter,
            )
            .order_by(Page.slug.asc(), PageZone.sort_order.asc())
        )
        async with self.session() as s:
            rows = (await s.execute(stmt)).unique().scalars().all()
            return [ZoneRead.model_validate(r) for r in rows]

    # ---------------------------------
    # Placements
    # ---------------------------------

    async def get_placement(self, placement_id: uuid.UUID) -> Optional[PlacementRead]:
        async with self.session() as s:
            row = await s.get(ContentPlacement, placement_id)
        return PlacementRead.model_validate(row) if row is not None else None

    async def list_placements(self, zone_id: uuid.UUID) -> list[PlacementRead]:
        """All placements of a zone, ascending by position."""
        async with self.session() as s:
            stmt = (
                select(ContentPlacement)
                .where(ContentPlacement.zone_id == zone_id)
                .order_by(ContentPlacement.position.asc())
            )
            rows = (await s.execute(stmt)).scalars().all()
        return [PlacementRead.model_validate(r) for r in rows]

    async def _positions(self, s: AsyncSession, zone_id: uuid.UUID) -> List[Tuple[uuid.UUID, int]]:
        stmt = (
            select(ContentPlacement.id, ContentPlacement.position)
            .where(ContentPlacement.zone_id == zone_id)
            .order_by(ContentPlacement.position.asc())
        )
        return [(r.id, r.position) for r in (await s.execute(stmt)).all()]

    async def _set_position(self, s: AsyncSession, placement_id: uuid.UUID, position: int) -> None:
        # One row per statement: unique checks are per row, so the caller controls the order.
        await s.execute(
            update(ContentPlacement)
            .where(ContentPlacement.id == placement_id)
            .values(position=position)
            .execution_options(synchronize_session=False)
        )

    async def _write_order(
        self, s: AsyncSession, ordered_ids: Sequence[uuid.UUID], current: dict[uuid.UUID, int]
    ) -> None:
        """
        Two-phase rewrite of positions to ``ordered_ids`` order.

        Phase one parks every placement above the live range, phase two writes
        the final ``0..n-1`` positions. Both run in the caller's transaction.
        """
        top = max(current.values(), default=-1)
        offset = max(self._temp_offset, top + 1)
        for index, pid in enumerate(ordered_ids):
            await self._set_position(s, pid, offset + index)
        for index, pid in enumerate(ordered_ids):
            await self._set_position(s, pid, index)

    async def create_placement(
        self,
        zone_id: uuid.UUID,
        payload: PlacementCreate,
        *,
        skip_if_present: bool = False,
    ) -> Optional[PlacementRead]:
        """
        Insert a placement, shifting occupants of its position up by one.

        Without a position the placement goes last. A position beyond the end
        is clamped to the end so positions stay dense. Occupants at or after
        the target are moved highest-first so no two rows share a position at
        any point.

        Args:
            skip_if_present: return None instead of inserting when the zone
                already holds the same article or video.

        Raises:
            NotFound: zone, article or video does not exist.
            ValidationError: negative position.
        """
        if payload.position is not None and payload.position < 0:
            raise ValidationError("Position must be a non-negative integer.")

        async with self.session() as s:
            if await self._lock_zone(s, zone_id) is None:
                raise NotFound("Zone not found.")
            if payload.article_id is not None and await s.get(Article, payload.article_id) is None:
                raise NotFound("Article not found.")
            if payload.video_id is not None and await s.get(Video, payload.video_id) is None:
                raise NotFound("Video not found.")

            if skip_if_present and (payload.article_id or payload.video_id):
                present = await s.scalar(
                    select(ContentPlacement.id).where(
                        ContentPlacement.zone_id == zone_id,
                        ContentPlacement.article_id == payload.article_id
                        if payload.article_id is not None
                        else ContentPlacement.video_id == payload.video_id,
                    ).limit(1)
                )
                if present is not None:
                    return None

            occupied = await self._positions(s, zone_id)
            top = occupied[-1][1] if occupied else -1
            position = top + 1 if payload.position is None else min(payload.position, top + 1)

            for pid, pos in reversed(occupied):
                if pos < position:
                    break
                await self._set_position(s, pid, pos + 1)

            obj = ContentPlacement(
                zone_id=zone_id,
                content_type=payload.content_type,
                article_id=payload.article_id if payload.content_type == ContentType.ARTICLE else None,
                video_id=payload.video_id if payload.content_type == ContentType.VIDEO else None,
                custom_content=payload.custom_content if payload.content_type == ContentType.CUSTOM else None,
                position=position,
                is_pinned=payload.is_pinned,
                start_date=payload.start_date,
                end_date=payload.end_date,
                created_by_id=payload.created_by_id,
            )
            s.add(obj)
            try:
                await s.flush()
            except IntegrityError:
                raise
            await s.refresh(obj)
            return PlacementRead.model_validate(obj)

    async def delete_placement(self, zone_id: uuid.UUID, placement_id: uuid.UUID) -> PlacementRead:
        """
        Delete a placement and close the gap it leaves (lowest position first).

        Raises:
            NotFound: zone or placement does not exist.
            CrossScopeViolation: the placement belongs to another zone.
        """
        async with self.session() as s:
            if await self._lock_zone(s, zone_id) is None:
                raise NotFound("Zone not found.")
            db_obj = await s.get(ContentPlacement, placement_id)
            if db_obj is None:
                raise NotFound("Placement not found.")
            if db_obj.zone_id != zone_id:
                raise CrossScopeViolation("Placement does not belong to this zone.")

            removed = PlacementRead.model_validate(db_obj)
            await s.delete(db_obj)
            await s.flush()

            for pid, pos in await self._positions(s, zone_id):
                if pos > removed.position:
                    await self._set_position(s, pid, pos - 1)
            return removed

    async def update_placement(self, zone_id: uuid.UUID, payload: PlacementUpdate) -> PlacementRead:
        """Partially update the non-positional fields of a placement."""
        async with self.session() as s:
            if await self._lock_zone(s, zone_id) is None:
                raise NotFound("Zone not found.")
            db_obj = await s.get(ContentPlacement, payload.id)
            if db_obj is None:
                raise NotFound("Placement not found.")
            if db_obj.zone_id != zone_id:
                raise CrossScopeViolation("Placement does not belong to this zone.")

            if provided(payload.is_pinned):
                db_obj.is_pinned = payload.is_pinned
            if provided(payload.start_date):
                db_obj.start_date = payload.start_date
            if provided(payload.end_date):
                db_obj.end_date = payload.end_date
            if provided(payload.custom_content):
                if db_obj.content_type != ContentType.CUSTOM:
                    raise InvalidReference("custom_content can only be set on CUSTOM placements.")
                if payload.custom_content is None:
                    raise InvalidReference("A CUSTOM placement needs a payload.")
                db_obj.custom_content = payload.custom_content

            if db_obj.start_date and db_obj.end_date and db_obj.start_date > db_obj.end_date:
                raise ValidationError("start_date must not be after end_date.")

            await s.flush()
            await s.refresh(db_obj)
            return PlacementRead.model_validate(db_obj)

    async def reorder_placements(
        self,
        zone_id: uuid.UUID,
        placement_ids: Sequence[uuid.UUID],
        *,
        page_id: Optional[uuid.UUID] = None,
    ) -> list[PlacementRead]:
        """
        Rewrite positions so ``placement_ids[i]`` ends at position ``i``.

        Every check runs inside the transaction before the first write, so a
        rejected call leaves the zone untouched.

        Raises:
            NotFound: zone does not exist.
            CrossScopeViolation: zone not on ``page_id``, or a foreign placement id.
            ValidationError: duplicate ids, or the ids do not cover the whole zone.
        """
        async with self.session() as s:
            zone_row = await self._lock_zone(s, zone_id)
            if zone_row is None:
                raise NotFound("Zone not found.")
            if page_id is not None and zone_row.page_id != page_id:
                raise CrossScopeViolation("Zone does not belong to this page.")

            current = dict(await self._positions(s, zone_id))
            if len(set(placement_ids)) != len(placement_ids):
                raise ValidationError("placementIds contains duplicates.")
            owned = sum(1 for pid in placement_ids if pid in current)
            if owned != len(placement_ids):
                raise CrossScopeViolation(
                    f"{len(placement_ids) - owned} placement(s) do not belong to this zone."
                )
            if len(placement_ids) != len(current):
                raise ValidationError(
                    f"placementIds must list all {len(current)} placements of the zone, got {len(placement_ids)}."
                )

            await self._write_order(s, placement_ids, current)

            rows = (await s.execute(
                select(ContentPlacement)
                .where(ContentPlacement.zone_id == zone_id)
                .order_by(ContentPlacement.position.asc())
                .execution_options(populate_existing=True)
            )).scalars().all()
            return [PlacementRead.model_validate(r) for r in rows]

    async def compact_placements(self, zone_id: uuid.UUID) -> list[PlacementRead]:
        """Renumber a zone's placements to ``0..n-1`` keeping their relative order."""
        async with self.session() as s:
            if await self._lock_zone(s, zone_id) is None:
                raise NotFound("Zone not found.")
            current = await self._positions(s, zone_id)
            await self._write_order(s, [pid for pid, _ in current], dict(current))
            rows = (await s.execute(
                select(ContentPlacement)
                .where(ContentPlacement.zone_id == zone_id)
                .order_by(ContentPlacement.position.asc())
                .execution_options(populate_existing=True)
            )).scalars().all()
            return [PlacementRead.model_validate(r) for r in rows]

    async def resort_placements_by_publish_date(self, zone_id: uuid.UUID) -> list[PlacementRead]:
        """
        Order article placements newest first; videos and custom payloads
        follow in their current relative order.
        """
        async with self.session() as s:
            if await self._lock_zone(s, zone_id) is None:
                raise NotFound("Zone not found.")
            stmt = (
                select(ContentPlacement.id, ContentPlacement.position, Article.published_at)
                .join(Article, Article.id == ContentPlacement.article_id, isouter=True)
                .where(ContentPlacement.zone_id == zone_id)
                .order_by(ContentPlacement.position.asc())
            )
            rows = (await s.execute(stmt)).all()
            articles = sorted(
                (r for r in rows if r.published_at is not None),
                key=lambda r: r.published_at,
                reverse=True,
            )
            others = [r for r in rows if r.published_at is None]
            ordered = [r.id for r in articles] + [r.id for r in others]
            await self._write_order(s, ordered, {r.id: r.position for r in rows})

            result = (await s.execute(
                select(ContentPlacement)
                .where(ContentPlacement.zone_id == zone_id)
                .order_by(ContentPlacement.position.asc())
                .execution_options(populate_existing=True)
            )).scalars().all()
            return [PlacementRead.model_validate(r) for r in result]

    # ---------------------------------
    # Audit log helpers
    # ---------------------------------

    async def create_audit_log(self, payload: AuditLogCreate) -> AuditLogRead:
        """Persist a new audit log entry."""
        async with self.session() as s:
            record = AuditLog(
                actor_id=payload.actor_id,
                action=payload.action,
                payload=dict(payload.payload or {}),
            )
            s.add(record)
            await s.flush()
            await s.refresh(record)
            return AuditLogRead.model_validate(record)

    async def list_audit_logs(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        actor_id: uuid.UUID | None = None,
        action: str | None = None,
    ) -> tuple[list[AuditLogRead], int]:
        """Return paginated audit log entries filtered by actor/action."""
        limit = max(0, int(limit))
        offset = max(0, int(offset))

        async with self.session() as s:
            stmt = select(AuditLog).order_by(AuditLog.created_at.desc())
            count_stmt = select(func.count(AuditLog.id))
            if actor_id:
                stmt = stmt.where(AuditLog.actor_id == actor_id)
                count_stmt = count_stmt.where(AuditLog.actor_id == actor_id)
            if action:
                stmt = stmt.where(AuditLog.action == action)
                count_stmt = count_stmt.where(AuditLog.action == action)

            if limit:
                stmt = stmt.limit(limit)
            if offset:
                stmt = stmt.offset(offset)

            rows = (await s.execute(stmt)).scalars().all()
            total = int((await s.execute(count_stmt)).scalar_one())

        return [AuditLogRead.model_validate(row) for row in rows], total
