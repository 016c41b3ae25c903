from datetime import date, datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """현재 UTC 시각 (timezone-aware)"""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    DB에서 읽은 datetime 을 UTC aware 로 정규화

    SQLite 는 tzinfo 없이 값을 돌려주므로 naive 값은 UTC 로 간주합니다.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day_start(now: Optional[datetime] = None) -> datetime:
    """해당 시각이 속한 UTC 달력일의 00:00"""
    current = as_utc(now) or utcnow()
    return current.replace(hour=0, minute=0, second=0, microsecond=0)


def utc_today(now: Optional[datetime] = None) -> date:
    return utc_day_start(now).date()


def window_start(period: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    리더보드 기간별 집계 시작 시각

    - daily: 오늘 00:00 UTC
    - weekly: 최근 7×24시간
    - monthly: 최근 30×24시간
    - all: None (전체 기간)
    """
    current = as_utc(now) or utcnow()
    if period == "daily":
        return utc_day_start(current)
    if period == "weekly":
        return current - timedelta(days=7)
    if period == "monthly":
        return current - timedelta(days=30)
    return None
