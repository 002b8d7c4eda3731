# utils/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
	"""Naive UTC ``datetime``; every timestamp in the project is stored this way."""
	return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime | None:
	if value is None or value.tzinfo is None:
		return value
	return value.astimezone(timezone.utc).replace(tzinfo=None)
