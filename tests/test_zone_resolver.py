"""Tests for merging manual placements with auto-filled content."""

import asyncio
import time
import uuid
from datetime import timedelta, timezone

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError

from page_builder.app import PageBuilder
from page_builder.db.enums import ContentType, PlacementOrigin, ZoneType
from page_builder.db.models.article import Article
from page_builder.db.schemas.placement import PlacementCreate
from page_builder.errors import NotFound
from page_builder.services.auto_fill import AutoFillResolver
from page_builder.services.content_repository import SqlContentRepository
from page_builder.services.zone_resolver import ZoneResolver

LATEST_ARTICLES = {"source": "articles", "sort": "publishedAt", "order": "desc", "limit": 10}


class BrokenQueryRepository(SqlContentRepository):
    """Placement lookups work, rule queries fail."""

    async def query(self, source, **kwargs):
        raise OperationalError("SELECT", {}, Exception("replica down"))


class StalledQueryRepository(SqlContentRepository):
    async def query(self, source, **kwargs):
        await asyncio.sleep(1)
        return []


class TestResolveZone:
    async def test_manual_then_auto_without_duplicates(
        self, builder, make_page, make_zone, make_article, place_article, hours_ago
    ):
        a1 = await make_article("A1", published_at=hours_ago(1))
        a2 = await make_article("A2", published_at=hours_ago(2))
        a3 = await make_article("A3", published_at=hours_ago(3))
        await make_article("A4", published_at=hours_ago(4))
        zone = await make_zone(await make_page(), max_items=3, rule=LATEST_ARTICLES)
        await place_article(zone, a1, position=0)

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.id for c in resolved.content] == [a1.id, a2.id, a3.id]
        assert [r.origin for r in resolved.records] == [
            PlacementOrigin.MANUAL, PlacementOrigin.AUTO, PlacementOrigin.AUTO,
        ]
        assert resolved.auto_fill_degraded is False

    async def test_manual_positions_come_first(self, builder, make_page, make_zone, make_article, place_article, hours_ago):
        old = await make_article("Old", published_at=hours_ago(48))
        older = await make_article("Older", published_at=hours_ago(72))
        await make_article("Newest", published_at=hours_ago(0.5))
        zone = await make_zone(await make_page(), max_items=5, rule=LATEST_ARTICLES)
        await place_article(zone, older)
        await place_article(zone, old)

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Older", "Old", "Newest"]

    async def test_full_zone_skips_auto_fill(self, builder, make_page, make_zone, make_article, place_article):
        zone = await make_zone(await make_page(), max_items=2, rule=LATEST_ARTICLES)
        for title in ("M1", "M2"):
            await place_article(zone, await make_article(title))
        await make_article("Auto candidate")

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["M1", "M2"]

    async def test_zone_without_rule_is_manual_only(self, builder, make_page, make_zone, make_article, place_article):
        zone = await make_zone(await make_page(), max_items=5)
        await place_article(zone, await make_article("Only"))
        await make_article("Ignored")

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Only"]

    async def test_pinned_flag_is_surfaced_without_reordering(
        self, builder, make_page, make_zone, make_article, place_article
    ):
        zone = await make_zone(await make_page())
        await place_article(zone, await make_article("First"))
        await place_article(zone, await make_article("Pinned"), is_pinned=True)

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["First", "Pinned"]
        assert [r.is_pinned for r in resolved.records] == [False, True]

    async def test_unknown_zone(self, builder):
        with pytest.raises(NotFound):
            await builder.zone_resolver.resolve_zone(uuid.uuid4())

    async def test_video_rule_excludes_placed_videos(self, builder, make_page, make_zone, make_video, hours_ago):
        placed = await make_video("Placed", created_at=hours_ago(1))
        other = await make_video("Other", created_at=hours_ago(2))
        zone = await make_zone(
            await make_page(), zone_type=ZoneType.VIDEO_CAROUSEL, max_items=4, rule={"source": "videos"},
        )
        await builder.placements.create_placement(
            zone.id, PlacementCreate(content_type=ContentType.VIDEO, video_id=placed.id)
        )

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.id for c in resolved.content] == [placed.id, other.id]

    async def test_custom_payload_is_included(self, builder, make_page, make_zone):
        zone = await make_zone(await make_page(), zone_type=ZoneType.CUSTOM_HTML)
        placed = await builder.placements.create_placement(
            zone.id, PlacementCreate(content_type=ContentType.CUSTOM, custom_content={"html": "<p>Ad</p>"})
        )

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert len(resolved.content) == 1
        assert resolved.content[0].kind == "custom"
        assert resolved.content[0].placement_id == placed.id
        assert resolved.content[0].data == {"html": "<p>Ad</p>"}


class TestVisibilityWindow:
    async def test_future_and_expired_placements_dropped(
        self, builder, make_page, make_zone, make_article, place_article, hours_ago
    ):
        zone = await make_zone(await make_page(), max_items=5)
        await place_article(zone, await make_article("Scheduled"), start_date=hours_ago(-2))
        await place_article(zone, await make_article("Expired"), end_date=hours_ago(1))
        await place_article(zone, await make_article("Live"), start_date=hours_ago(3), end_date=hours_ago(-3))
        await place_article(zone, await make_article("Always"))

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Live", "Always"]

    async def test_explicit_now(self, builder, make_page, make_zone, make_article, place_article, hours_ago):
        zone = await make_zone(await make_page())
        await place_article(zone, await make_article("Later"), start_date=hours_ago(-2))

        resolved = await builder.zone_resolver.resolve_zone(zone.id, now=hours_ago(-3))

        assert [c.title for c in resolved.content] == ["Later"]

    async def test_aware_window_around_now(self, builder, make_page, make_zone, make_article, place_article, hours_ago):
        zone = await make_zone(await make_page())
        eastern = timezone(timedelta(hours=-5))
        await place_article(
            zone, await make_article("Live"),
            start_date=hours_ago(1).replace(tzinfo=timezone.utc).astimezone(eastern),
            end_date=hours_ago(-1).replace(tzinfo=timezone.utc).astimezone(eastern),
        )

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Live"]

    async def test_aware_now(self, builder, make_page, make_zone, make_article, place_article, hours_ago):
        zone = await make_zone(await make_page())
        await place_article(zone, await make_article("Later"), start_date=hours_ago(-2))

        at = hours_ago(-3).replace(tzinfo=timezone.utc).astimezone(timezone(timedelta(hours=9)))
        resolved = await builder.zone_resolver.resolve_zone(zone.id, now=at)

        assert [c.title for c in resolved.content] == ["Later"]

    async def test_invisible_placement_frees_capacity_and_exclusion(
        self, builder, make_page, make_zone, make_article, place_article, hours_ago
    ):
        scheduled = await make_article("Scheduled", published_at=hours_ago(1))
        zone = await make_zone(await make_page(), max_items=1, rule=LATEST_ARTICLES)
        await place_article(zone, scheduled, start_date=hours_ago(-5))

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [r.origin for r in resolved.records] == [PlacementOrigin.AUTO]
        assert resolved.content[0].id == scheduled.id


class TestMissingContent:
    async def test_deleted_article_skipped_but_counted(
        self, builder, database, make_page, make_zone, make_article, place_article, hours_ago
    ):
        zone = await make_zone(await make_page(), max_items=2, rule=LATEST_ARTICLES)
        kept = await make_article("Kept", published_at=hours_ago(5))
        await make_article("Auto", published_at=hours_ago(1))
        await make_article("Extra", published_at=hours_ago(3))
        placed = await place_article(zone, kept)
        # Simulates a placement whose article vanished from the content store.
        resolver = ZoneResolver(database, _HidingRepository(database, {kept.id}))

        resolved = await resolver.resolve_zone(zone.id)

        assert placed.id not in [r.placement_id for r in resolved.records]
        assert [c.title for c in resolved.content] == ["Auto"]

    async def test_deleted_article_disappears_from_zone(
        self, builder, database, make_page, make_zone, make_article, place_article
    ):
        zone = await make_zone(await make_page())
        gone = await make_article("Gone")
        await place_article(zone, gone)
        async with database.session() as s:
            await s.execute(delete(Article).where(Article.id == gone.id))

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert resolved.content == []


class _HidingRepository(SqlContentRepository):
    def __init__(self, database, hidden: set[uuid.UUID]) -> None:
        super().__init__(database)
        self._hidden = hidden

    async def fetch_articles(self, ids):
        found = await super().fetch_articles(ids)
        return {k: v for k, v in found.items() if k not in self._hidden}


class TestDegradedAutoFill:
    async def test_query_failure_serves_manual_only(self, database, make_page, make_zone, make_article, place_article):
        zone = await make_zone(await make_page(), max_items=5, rule=LATEST_ARTICLES)
        await place_article(zone, await make_article("Manual"))
        await make_article("Would be auto")
        resolver = ZoneResolver(database, BrokenQueryRepository(database))

        resolved = await resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Manual"]
        assert resolved.auto_fill_degraded is True

    async def test_timeout_serves_manual_only(self, database, make_page, make_zone, make_article, place_article):
        zone = await make_zone(await make_page(), max_items=5, rule=LATEST_ARTICLES)
        await place_article(zone, await make_article("Manual"))
        repo = StalledQueryRepository(database)
        resolver = ZoneResolver(database, repo, AutoFillResolver(repo, timeout=0.05))

        resolved = await resolver.resolve_zone(zone.id)

        assert [c.title for c in resolved.content] == ["Manual"]
        assert resolved.auto_fill_degraded is True


class StalledLookupRepository(SqlContentRepository):
    async def fetch_articles(self, ids):
        await asyncio.sleep(2)
        return await super().fetch_articles(ids)


class BrokenLookupRepository(SqlContentRepository):
    async def fetch_articles(self, ids):
        raise OperationalError("SELECT", {}, Exception("replica down"))


class TestDegradedLookup:
    """Manual placement lookups share the auto-fill timeout and failure handling."""

    async def test_stalled_lookup_is_bounded(self, database, make_page, make_zone, make_article, place_article):
        zone = await make_zone(await make_page(), max_items=5, rule=LATEST_ARTICLES)
        await place_article(zone, await make_article("Manual"))
        repo = StalledLookupRepository(database)
        resolver = ZoneResolver(database, repo, AutoFillResolver(repo, timeout=0.05))

        started = time.monotonic()
        resolved = await resolver.resolve_zone(zone.id)

        assert time.monotonic() - started < 1
        assert resolved.content == []
        assert resolved.auto_fill_degraded is True

    async def test_failed_lookup_keeps_custom_placements(
        self, database, make_page, make_zone, make_article, place_article
    ):
        zone = await make_zone(await make_page(), max_items=5, rule=LATEST_ARTICLES)
        await place_article(zone, await make_article("Manual"))
        repo = BrokenLookupRepository(database)
        builder = PageBuilder(database, repo)
        await builder.placements.create_placement(
            zone.id, PlacementCreate(content_type=ContentType.CUSTOM, custom_content={"html": "<p>Ad</p>"})
        )

        resolved = await builder.zone_resolver.resolve_zone(zone.id)

        assert [c.data for c in resolved.content] == [{"html": "<p>Ad</p>"}]
        assert resolved.auto_fill_degraded is True
