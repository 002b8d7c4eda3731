# services/auto_fill.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, Optional
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from page_builder.config import Settings
from page_builder.db.enums import ContentSource, MaxAge
from page_builder.db.schemas.auto_fill import AutoFillRule
from page_builder.db.schemas.content import ArticleSummary, VideoSummary
from page_builder.errors import ValidationError
from page_builder.services.content_repository import ContentRepository, bounded
from page_builder.utils.clock import as_naive_utc, utcnow

MAX_AGE_WINDOWS = {
	MaxAge.DAY: timedelta(hours=24),
	MaxAge.WEEK: timedelta(days=7),
	MaxAge.MONTH: timedelta(days=30),
}


class AutoFillResolver:
	"""
	Turns an auto-fill rule into an ordered list of content summaries.

	Excluded ids are dropped after the query, so the first window asks for
	``limit + len(exclusions)`` items; when that still comes up short and the
	window was full, further windows are read until the round cap is hit.
	"""

	def __init__(
		self,
		repository: ContentRepository,
		*,
		timeout: Optional[float] = None,
		max_rounds: Optional[int] = None,
	) -> None:
		settings = Settings()
		self._repository = repository
		self._timeout = timeout if timeout is not None else settings.content_query_timeout
		self._max_rounds = max(1, max_rounds if max_rounds is not None else settings.auto_fill_max_rounds)

	@property
	def timeout(self) -> float:
		return self._timeout

	async def resolve(
		self,
		rule: Optional[AutoFillRule],
		exclude_ids: Iterable[UUID] = (),
		limit: Optional[int] = None,
		*,
		now: Optional[datetime] = None,
	) -> List[ArticleSummary | VideoSummary]:
		if rule is None:
			return []
		limit = rule.limit if limit is None else limit
		if limit < 0:
			raise ValidationError("limit must be a non-negative integer.")
		if limit == 0:
			return []

		excluded = set(exclude_ids)
		published_after = self._lower_bound(rule, now)
		window = limit + len(excluded)
		offset = rule.skip
		items: List[ArticleSummary | VideoSummary] = []

		for _ in range(self._max_rounds):
			batch = await self._query(rule, published_after, offset, window)
			items.extend(item for item in batch if item.id not in excluded)
			if len(items) >= limit or len(batch) < window:
				break
			offset += window

		return items[:limit]

	async def preview(
		self,
		rule: AutoFillRule | Mapping[str, Any],
		*,
		now: Optional[datetime] = None,
	) -> List[ArticleSummary | VideoSummary]:
		"""
		Resolve an unsaved rule for the editor. Query failures are raised as
		``UpstreamUnavailable`` instead of being absorbed.
		"""
		if not isinstance(rule, AutoFillRule):
			try:
				rule = AutoFillRule.model_validate(rule)
			except PydanticValidationError as exc:
				raise ValidationError(f"Invalid auto-fill rule: {exc}") from exc
		return await self.resolve(rule, now=now)

	def _lower_bound(self, rule: AutoFillRule, now: Optional[datetime]) -> Optional[datetime]:
		max_age = rule.filters.max_age
		if max_age is None:
			return None
		moment = as_naive_utc(now) if now is not None else utcnow()
		return moment - MAX_AGE_WINDOWS[max_age]

	async def _query(
		self,
		rule: AutoFillRule,
		published_after: Optional[datetime],
		skip: int,
		limit: int,
	) -> List[ArticleSummary | VideoSummary]:
		return await bounded(
			self._repository.query(
				rule.source,
				filters=rule.filters,
				published_after=published_after,
				sort=rule.sort_field,
				order=rule.order,
				skip=skip,
				limit=limit,
			),
			self._timeout,
			f"Content query for {rule.source}",
		)


def exclusions_for(source: ContentSource, article_ids: Iterable[UUID], video_ids: Iterable[UUID]) -> set[UUID]:
	"""The exclusion set that applies to a rule over ``source``."""
	if source == ContentSource.VIDEOS:
		return set(video_ids)
	return set(article_ids)
