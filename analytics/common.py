"""Shared helpers for the analytics services."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, TypeVar

from history import CampaignNotFoundError, LeadHistoryStore

T = TypeVar("T")
R = TypeVar("R")

SECONDS_PER_DAY = 60 * 60 * 24
SECONDS_PER_HOUR = 60 * 60

# Leads counted as a successful outcome for attribution and conversion rates
CONVERTED_STATUSES = frozenset({"qualified", "converted"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from earlier to later."""
    return (as_utc(later) - as_utc(earlier)).total_seconds() / SECONDS_PER_DAY


def enum_value(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def percentage(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def require_campaign(store: LeadHistoryStore, campaign_id: int):
    campaign = store.get_campaign_by_id(campaign_id)
    if not campaign:
        raise CampaignNotFoundError(campaign_id)
    return campaign


def map_in_order(fn: Callable[[T], R], items: Iterable[T], max_workers: int = 1) -> List[R]:
    """Apply fn to every item, optionally on a bounded thread pool.

    Results keep the input order either way.
    """
    items = list(items)
    if max_workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as pool:
        return list(pool.map(fn, items))
