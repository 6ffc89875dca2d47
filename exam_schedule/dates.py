"""
Korean date/time helpers.
한국어 날짜("11월 10일") 및 오전/오후 시각 표기를 변환합니다.
"""

import re
from datetime import date

_MONTH_DAY_RE = re.compile(r"(\d{1,2})월\s*(\d{1,2})일")
_DOT_DATE_RE = re.compile(r"(\d{4})\.\s*(\d{1,2})\.\s*(\d{1,2})")
_DASH_DATE_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?(?::\d{2})?\s*$")


def to_24h(meridiem: str, hour: int, minute: int = 0) -> str:
    """
    Convert a Korean 12-hour clock reading to "HH:MM".

    오후 adds 12 unless the hour is already 12; 오전 12시 is midnight.
    """
    if meridiem not in ("오전", "오후"):
        raise ValueError(f"meridiem must be '오전' or '오후', got {meridiem!r}")
    if not 1 <= hour <= 12:
        raise ValueError(f"hour must be between 1 and 12, got {hour}")
    if not 0 <= minute <= 59:
        raise ValueError(f"minute must be between 0 and 59, got {minute}")

    if meridiem == "오후":
        hour = hour if hour == 12 else hour + 12
    elif hour == 12:
        hour = 0
    return f"{hour:02d}:{minute:02d}"


def make_date(year: int, month: int, day: int) -> date | None:
    """date() that returns None instead of raising on an impossible day."""
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_korean_date(text: str | None, year: int) -> date | None:
    """
    Find the first date in *text*.

    "11월 10일" (year supplied by caller) / "2025.11.10" / "2025-11-10(월)"
    """
    if not text:
        return None

    m = _DASH_DATE_RE.search(text)
    if m:
        return make_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _DOT_DATE_RE.search(text)
    if m:
        return make_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _MONTH_DAY_RE.search(text)
    if m:
        return make_date(year, int(m.group(1)), int(m.group(2)))

    return None


def normalize_time(value) -> str | None:
    """'9:00' -> '09:00', '14:00:00' -> '14:00'; anything unparseable -> None."""
    if value is None:
        return None
    if hasattr(value, "hour") and hasattr(value, "minute"):
        return f"{value.hour:02d}:{value.minute:02d}"
    m = _TIME_RE.match(str(value))
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2) or 0)
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"
