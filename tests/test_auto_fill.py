"""Tests for the auto-fill resolver."""

import asyncio
import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from page_builder.db.enums import ContentSource
from page_builder.db.schemas.auto_fill import AutoFillRule
from page_builder.db.schemas.content import ArticleSummary
from page_builder.errors import UpstreamUnavailable, ValidationError
from page_builder.services.auto_fill import AutoFillResolver
from page_builder.services.content_repository import SqlContentRepository
from page_builder.utils.clock import utcnow


def _make_summaries(count: int) -> list[ArticleSummary]:
    """Newest first, like a publishedAt desc query."""
    now = utcnow()
    return [
        ArticleSummary(
            id=uuid.uuid4(),
            title=f"Story {i}",
            slug=f"story-{i}",
            published_at=now - timedelta(minutes=i),
            created_at=now - timedelta(minutes=i),
        )
        for i in range(count)
    ]


class WindowRepository:
    """In-memory repository that records every window it serves."""

    def __init__(self, items: list[ArticleSummary]) -> None:
        self.items = items
        self.calls: list[tuple[int, int]] = []

    async def query(self, source, *, filters, published_after, sort, order, skip, limit):
        self.calls.append((skip, limit))
        return self.items[skip:skip + limit]


class FailingRepository:
    async def query(self, source, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))


class SlowRepository:
    async def query(self, source, **kwargs):
        await asyncio.sleep(1)
        return []


class TestOverFetch:
    """Exclusions are made up for by asking for more."""

    async def test_first_window_covers_exclusions(self):
        items = _make_summaries(10)
        repo = WindowRepository(items)
        resolver = AutoFillResolver(repo)

        result = await resolver.resolve(
            AutoFillRule(source=ContentSource.ARTICLES),
            exclude_ids={items[0].id, items[2].id},
            limit=3,
        )

        assert [r.id for r in result] == [items[1].id, items[3].id, items[4].id]
        assert repo.calls == [(0, 5)]

    async def test_unmatched_exclusions_still_widen_window(self):
        items = _make_summaries(12)
        repo = WindowRepository(items)
        excluded = {items[0].id, uuid.uuid4(), uuid.uuid4()}

        result = await AutoFillResolver(repo).resolve(AutoFillRule(source=ContentSource.ARTICLES), excluded, limit=4)

        assert [r.id for r in result] == [i.id for i in items[1:5]]
        assert repo.calls == [(0, 7)]

    async def test_further_windows_when_short(self):
        # A feed that repeats an excluded item leaves the first window short.
        repeated = _make_summaries(1) * 3
        fresh = _make_summaries(4)
        repo = WindowRepository(repeated + fresh)
        resolver = AutoFillResolver(repo, max_rounds=3)

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES), {repeated[0].id}, limit=2)

        assert [r.id for r in result] == [fresh[0].id, fresh[1].id]
        assert repo.calls == [(0, 3), (3, 3)]

    async def test_round_cap(self):
        repeated = _make_summaries(1) * 6
        repo = WindowRepository(repeated + _make_summaries(4))
        resolver = AutoFillResolver(repo, max_rounds=2)

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES), {repeated[0].id}, limit=2)

        assert result == []
        assert repo.calls == [(0, 3), (3, 3)]

    async def test_stops_on_short_window(self):
        items = _make_summaries(3)
        repo = WindowRepository(items)
        resolver = AutoFillResolver(repo, max_rounds=5)

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES), {items[0].id}, limit=5)

        assert len(result) == 2
        assert len(repo.calls) == 1

    async def test_skip_offsets_first_window(self):
        items = _make_summaries(6)
        repo = WindowRepository(items)

        result = await AutoFillResolver(repo).resolve(AutoFillRule(source=ContentSource.ARTICLES, skip=2, limit=2))

        assert [r.id for r in result] == [items[2].id, items[3].id]

    async def test_zero_limit_skips_query(self):
        repo = WindowRepository(_make_summaries(3))

        assert await AutoFillResolver(repo).resolve(AutoFillRule(source=ContentSource.ARTICLES), limit=0) == []
        assert repo.calls == []

    async def test_negative_limit_rejected(self):
        with pytest.raises(ValidationError):
            await AutoFillResolver(WindowRepository([])).resolve(AutoFillRule(source=ContentSource.ARTICLES), limit=-1)


class TestRuleFilters:
    """Rules evaluated against the SQL repository."""

    async def test_category_and_featured_filters(self, database, make_article, make_category):
        markets = await make_category("Markets")
        other = await make_category("Other")
        wanted = await make_article("Wanted", category_id=markets.id, is_featured=True)
        await make_article("Not featured", category_id=markets.id)
        await make_article("Wrong category", category_id=other.id, is_featured=True)
        resolver = AutoFillResolver(SqlContentRepository(database))

        result = await resolver.resolve(AutoFillRule.model_validate({
            "source": "articles",
            "filters": {"categorySlug": markets.slug, "isFeatured": True},
        }))

        assert [r.id for r in result] == [wanted.id]

    async def test_tags_match_any(self, database, make_article, make_tag):
        fed = await make_tag("fed")
        oil = await make_tag("oil")
        gold = await make_tag("gold")
        a = await make_article("Fed", tags=[fed])
        b = await make_article("Oil", tags=[oil, gold])
        await make_article("Gold only", tags=[gold])
        resolver = AutoFillResolver(SqlContentRepository(database))

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES, filters={"tags": ["fed", "oil"]}))

        assert {r.id for r in result} == {a.id, b.id}

    async def test_max_age(self, database, make_article, hours_ago):
        fresh = await make_article("Fresh", published_at=hours_ago(2))
        await make_article("Stale", published_at=hours_ago(30))
        resolver = AutoFillResolver(SqlContentRepository(database))

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES, filters={"maxAge": "24h"}))

        assert [r.id for r in result] == [fresh.id]

    async def test_sort_by_title_ascending(self, database, make_article):
        await make_article("Charlie")
        await make_article("Alpha")
        await make_article("Bravo")
        resolver = AutoFillResolver(SqlContentRepository(database))

        result = await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES, sort="title", order="asc"))

        assert [r.title for r in result] == ["Alpha", "Bravo", "Charlie"]

    async def test_videos_newest_first(self, database, make_video, hours_ago):
        await make_video("Old", created_at=hours_ago(48))
        await make_video("New", created_at=hours_ago(1))
        await make_video("Ancient", created_at=hours_ago(24 * 40))
        resolver = AutoFillResolver(SqlContentRepository(database))

        result = await resolver.resolve(AutoFillRule(source=ContentSource.VIDEOS, filters={"maxAge": "30d"}))

        assert [r.title for r in result] == ["New", "Old"]
        assert all(r.kind == "video" for r in result)


class TestUpstreamFailure:
    async def test_database_error_becomes_upstream_unavailable(self):
        with pytest.raises(UpstreamUnavailable):
            await AutoFillResolver(FailingRepository()).resolve(AutoFillRule(source=ContentSource.ARTICLES))

    async def test_timeout_becomes_upstream_unavailable(self):
        resolver = AutoFillResolver(SlowRepository(), timeout=0.05)

        with pytest.raises(UpstreamUnavailable):
            await resolver.resolve(AutoFillRule(source=ContentSource.ARTICLES))


class TestPreview:
    async def test_preview_raw_rule(self, database, make_article):
        article = await make_article("Preview me")

        result = await AutoFillResolver(SqlContentRepository(database)).preview({"source": "articles", "limit": 5})

        assert [r.id for r in result] == [article.id]

    @pytest.mark.parametrize(
        "raw",
        [
            {"source": "podcasts"},
            {"source": "articles", "limit": -1},
            {"source": "articles", "filters": {"maxAge": "1y"}},
            {"limit": 3},
        ],
    )
    async def test_preview_invalid_rule(self, raw):
        with pytest.raises(ValidationError):
            await AutoFillResolver(WindowRepository([])).preview(raw)

    async def test_preview_surfaces_upstream_failure(self):
        with pytest.raises(UpstreamUnavailable):
            await AutoFillResolver(FailingRepository()).preview({"source": "articles"})
