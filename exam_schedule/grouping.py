"""
Date-grouping engine for crawled schedule rows.
지역별 크롤링 행을 시험일 기준으로 묶어 차수를 부여합니다.

Session numbers are assigned solely here: distinct exam dates are sorted in
calendar order and numbered 1..N.
"""

import logging
from collections import OrderedDict
from datetime import date

from .schema import FragmentSource, GroupedSession, ScheduleFragment

logger = logging.getLogger(__name__)


def _check_fragment(fragment: ScheduleFragment) -> None:
    if fragment.source != FragmentSource.CRAWLED:
        raise ValueError(f"group_by_date only accepts crawled fragments, got source={fragment.source.value}")
    if fragment.exam_date is None:
        raise ValueError(f"Crawled fragment for region {fragment.region_name!r} has no exam_date")
    if not fragment.region_name:
        raise ValueError(f"Crawled fragment on {fragment.exam_date} has no region_name")


def group_by_date(fragments: list[ScheduleFragment]) -> list[GroupedSession]:
    """
    Group crawled fragments into per-date sessions.

    Args:
        fragments: Crawl-sourced fragments, one region each

    Returns:
        One GroupedSession per distinct exam date, ordered by date
    """
    by_date: dict[date, list[ScheduleFragment]] = {}
    for fragment in fragments:
        _check_fragment(fragment)
        by_date.setdefault(fragment.exam_date, []).append(fragment)

    sessions: list[GroupedSession] = []
    for session_number, exam_date in enumerate(sorted(by_date), start=1):
        rows = by_date[exam_date]
        representative = rows[0]

        # region name -> code, first encounter wins
        regions: OrderedDict[str, str] = OrderedDict()
        for row in rows:
            regions.setdefault(row.region_name, row.region_code or "")
        locations = list(regions.keys())

        sessions.append(
            GroupedSession(
                year=representative.year,
                exam_type=representative.exam_type,
                session_number=session_number,
                exam_date=exam_date,
                exam_time_start=representative.exam_time_start,
                exam_time_end=representative.exam_time_end,
                locations=locations,
                region_codes=list(regions.values()),
                registration_period=representative.registration_period,
                result_date=representative.result_date,
                notes=f"{exam_date.isoformat()} - {', '.join(locations)} ({len(locations)}개 지역)",
            )
        )
        logger.debug("%d차: %s - %s", session_number, exam_date, ", ".join(locations))

    logger.info("Grouped %d crawled rows into %d sessions", len(fragments), len(sessions))
    return sessions
