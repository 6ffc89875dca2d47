"""
Internal-deadline parsing and matching.
본사 자체 시험접수 마감 문구를 파싱하고 차수 범위에 매칭합니다.

Supported lines:
  "1~4차 시험접수마감: 11월 4일(화) 오전 11시"   -> new deadline for sessions 1-4
  "수험표 공지 예정 : 11월 7일 오후 2시 이후"     -> notice for the previous deadline

A notice line attaches to the most recently parsed deadline, so it must
follow its deadline line in the input.
"""

import logging
import re

from .dates import make_date, to_24h
from .schema import MAX_SESSION_NUMBER, ExamType, InternalDeadline

logger = logging.getLogger(__name__)

_DEADLINE_RE = re.compile(
    r"(\d+)(?:\s*[~～-]\s*(\d+))?\s*차\s*시험접수\s*마감\s*:\s*"
    r"(\d{1,2})월\s*(\d{1,2})일.*?(오전|오후)\s*(\d{1,2})시(?:\s*(\d{1,2})분)?"
)
_NOTICE_RE = re.compile(
    r"수험표\s*공지\s*(?:예정\s*)?:\s*"
    r"(\d{1,2})월\s*(\d{1,2})일.*?(오전|오후)\s*(\d{1,2})시(?:\s*(\d{1,2})분)?"
)
# "1~4", "1~4차", "5", "5차"
_RANGE_RE = re.compile(r"^\s*(\d+)\s*(?:[~～]\s*(\d+))?\s*차?\s*$")


def _clock(meridiem: str, hour: str, minute: str | None) -> str | None:
    try:
        return to_24h(meridiem, int(hour), int(minute or 0))
    except ValueError:
        return None


def parse_internal_deadlines(
    text: str,
    year: int,
    exam_type: ExamType = ExamType.LIFE,
) -> list[InternalDeadline]:
    """
    Parse internal deadline text line by line.

    Args:
        text: Free-form deadline notice text
        year: Year applied to "<month>월 <day>일" dates
        exam_type: Exam track the deadlines belong to

    Returns:
        Deadlines in input order; unparseable lines are skipped
    """
    deadlines: list[InternalDeadline] = []
    if not text or not text.strip():
        return deadlines

    for line in (ln.strip() for ln in text.splitlines()):
        if not line:
            continue

        m = _DEADLINE_RE.search(line)
        if m:
            session_range = normalize_session_range(m.group(1), m.group(2))
            if session_range is None:
                logger.warning("Session range out of bounds, skipped: %s", line)
                continue
            deadlines.append(
                InternalDeadline(
                    year=year,
                    exam_type=exam_type,
                    session_range=session_range,
                    deadline_date=make_date(year, int(m.group(3)), int(m.group(4))),
                    deadline_time=_clock(m.group(5), m.group(6), m.group(7)),
                    notes=line,
                )
            )
            continue

        m = _NOTICE_RE.search(line)
        if m:
            if not deadlines:
                logger.warning("Notice line has no preceding deadline, skipped: %s", line)
                continue
            last = deadlines[-1]
            deadlines[-1] = last.model_copy(
                update={
                    "notice_date": make_date(year, int(m.group(1)), int(m.group(2))),
                    "notice_time": _clock(m.group(3), m.group(4), m.group(5)),
                }
            )
            continue

        logger.debug("Skipped unparseable deadline line: %s", line)

    logger.info("Parsed %d internal deadlines", len(deadlines))
    return deadlines


def _bounds(start: int, end: int) -> tuple[int, int] | None:
    low, high = min(start, end), max(start, end)
    if low < 1 or high > MAX_SESSION_NUMBER:
        return None
    return (low, high)


def normalize_session_range(start, end=None) -> str | None:
    """
    Canonical range string for two session numbers.

    (1, 4) -> '1~4'; (5, None) -> '5'; (4, 1) -> '1~4'.
    Returns None when a number is below 1 or above MAX_SESSION_NUMBER.
    """
    start = int(start)
    end = int(end) if end is not None else start
    bounds = _bounds(start, end)
    if bounds is None:
        return None
    low, high = bounds
    return f"{low}~{high}" if high > low else str(low)


def parse_session_range(session_range: str | None) -> tuple[int, int] | None:
    """'1~4' -> (1, 4); '5' -> (5, 5); '4~1' -> (1, 4); malformed or out of bounds -> None."""
    if not session_range:
        return None
    m = _RANGE_RE.match(session_range)
    if not m:
        return None
    start = int(m.group(1))
    end = int(m.group(2)) if m.group(2) else start
    return _bounds(start, end)


def session_numbers(session_range: str | None) -> list[int]:
    """Every session number covered by a range string."""
    bounds = parse_session_range(session_range)
    if bounds is None:
        return []
    start, end = bounds
    return list(range(start, end + 1))


def find_matching_deadline(
    session_number: int,
    deadlines: list[InternalDeadline],
) -> InternalDeadline | None:
    """Return the first deadline whose range covers *session_number*."""
    for deadline in deadlines:
        bounds = parse_session_range(deadline.session_range)
        # a bare number parses to (n, n), i.e. exact match
        if bounds and bounds[0] <= session_number <= bounds[1]:
            return deadline
    return None
