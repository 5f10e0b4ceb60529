from datetime import datetime, timedelta


def format_number(n: int | float | None, locale: str = "en") -> str:
    if n is None:
        return "N/A"
    if locale == "ko":
        if n >= 100_000_000:
            return f"{n / 100_000_000:.1f}억"
        if n >= 10_000:
            return f"{n / 10_000:.1f}만"
        return f"{n:,}"
    if n >= 1_000_000_000:
        return f"{n / 1_000_000_000:.1f}B"
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return f"{n:,}"


def _as_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def format_date(value: datetime | str | None, locale: str = "en") -> str:
    if not value:
        return "N/A"
    dt = _as_datetime(value)
    if locale == "ko":
        return f"{dt.year}년 {dt.month}월 {dt.day}일"
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


def format_interval(delta: timedelta, locale: str = "en") -> str:
    days = delta.days
    hours = delta.seconds // 3600
    if locale == "ko":
        return f"{days}일 {hours}시간" if days > 0 else f"{hours}시간"
    return f"{days}d {hours}h" if days > 0 else f"{hours}h"
