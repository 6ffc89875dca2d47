"""
Three-way merge of image, crawled and internal schedule data.
이미지 / 크롤링 / 내부 마감 일정을 (시험종류, 차수) 기준으로 종합합니다.

Priority: image > crawled > internal. Each (exam_type, session_number) key
present in any input appears exactly once in the output.
"""

import logging

from .deadlines import find_matching_deadline, session_numbers
from .schema import (
    ComprehensiveSchedule,
    DataSource,
    ExamType,
    GroupedSession,
    InternalDeadline,
    ScheduleFragment,
)

logger = logging.getLogger(__name__)

# (image, crawled, internal) -> provenance
_DATA_SOURCE_TABLE: dict[tuple[bool, bool, bool], DataSource] = {
    (True, True, True): DataSource.COMPREHENSIVE_MATCH,
    (True, True, False): DataSource.IMAGE_CRAWLED,
    (True, False, True): DataSource.IMAGE_INTERNAL,
    (True, False, False): DataSource.IMAGE_ONLY,
    (False, True, True): DataSource.CRAWLED_INTERNAL,
    (False, True, False): DataSource.CRAWLED_ONLY,
    (False, False, True): DataSource.INTERNAL_ONLY,
}


def resolve_data_source(has_image: bool, has_crawled: bool, has_internal: bool) -> DataSource:
    """Look up the provenance tag for a combination of contributing streams."""
    try:
        return _DATA_SOURCE_TABLE[(has_image, has_crawled, has_internal)]
    except KeyError:
        raise ValueError("At least one source must contribute to a schedule") from None


def combine_notes(*notes: str | None) -> str:
    return " | ".join(n.strip() for n in notes if n and n.strip())


def _deadline_fields(deadline: InternalDeadline | None) -> dict:
    if deadline is None:
        return {"has_internal_deadline": False}
    return {
        "session_range": deadline.session_range,
        "internal_deadline_date": deadline.deadline_date,
        "internal_deadline_time": deadline.deadline_time,
        "notice_date": deadline.notice_date,
        "notice_time": deadline.notice_time,
        "has_internal_deadline": True,
    }


class _DeadlineIndex:
    """Deadlines partitioned by exam type, keeping input order."""

    def __init__(self, deadlines: list[InternalDeadline]):
        self._by_type: dict[ExamType, list[InternalDeadline]] = {}
        for deadline in deadlines:
            self._by_type.setdefault(deadline.exam_type, []).append(deadline)

    def find(self, exam_type: ExamType, session_number: int) -> InternalDeadline | None:
        return find_matching_deadline(session_number, self._by_type.get(exam_type, []))


def _from_image(
    image: ScheduleFragment,
    crawled: GroupedSession | None,
    deadline: InternalDeadline | None,
) -> ComprehensiveSchedule:
    # image values win; empty image fields fall back to the crawled session
    def pick(field: str):
        value = getattr(image, field)
        if value in (None, "", []) and crawled is not None:
            return getattr(crawled, field)
        return value

    return ComprehensiveSchedule(
        year=image.year,
        exam_type=image.exam_type,
        session_number=image.session_number,
        exam_date=pick("exam_date"),
        exam_time_start=pick("exam_time_start"),
        exam_time_end=pick("exam_time_end"),
        locations=pick("locations"),
        region_codes=crawled.region_codes if crawled and not image.locations else [],
        registration_period=crawled.registration_period if crawled else None,
        result_date=crawled.result_date if crawled else None,
        data_source=resolve_data_source(True, crawled is not None, deadline is not None),
        notes=image.notes,
        combined_notes=combine_notes(
            image.notes,
            crawled.notes if crawled else None,
            deadline.notes if deadline else None,
        ),
        **_deadline_fields(deadline),
    )


def _from_crawled(crawled: GroupedSession, deadline: InternalDeadline | None) -> ComprehensiveSchedule:
    return ComprehensiveSchedule(
        year=crawled.year,
        exam_type=crawled.exam_type,
        session_number=crawled.session_number,
        exam_date=crawled.exam_date,
        exam_time_start=crawled.exam_time_start,
        exam_time_end=crawled.exam_time_end,
        locations=list(crawled.locations),
        region_codes=list(crawled.region_codes),
        registration_period=crawled.registration_period,
        result_date=crawled.result_date,
        data_source=resolve_data_source(False, True, deadline is not None),
        notes=crawled.notes,
        combined_notes=combine_notes(crawled.notes, deadline.notes if deadline else None),
        **_deadline_fields(deadline),
    )


def _from_internal(deadline: InternalDeadline, session_number: int) -> ComprehensiveSchedule:
    return ComprehensiveSchedule(
        year=deadline.year,
        exam_type=deadline.exam_type,
        session_number=session_number,
        data_source=DataSource.INTERNAL_ONLY,
        notes=deadline.notes,
        combined_notes=combine_notes(deadline.notes),
        **_deadline_fields(deadline),
    )


def merge(
    image_fragments: list[ScheduleFragment],
    crawled_sessions: list[GroupedSession],
    internal_deadlines: list[InternalDeadline],
) -> list[ComprehensiveSchedule]:
    """
    Merge the three schedule streams into one de-duplicated list.

    Args:
        image_fragments: Image-extracted fragments (must carry session_number)
        crawled_sessions: Output of group_by_date
        internal_deadlines: Parsed internal deadlines

    Returns:
        Image-keyed records first, then crawl-only, then internal-only
    """
    crawled_by_key: dict[tuple[ExamType, int], GroupedSession] = {}
    for session in crawled_sessions:
        crawled_by_key.setdefault(session.key, session)

    deadlines = _DeadlineIndex(internal_deadlines)
    processed: set[tuple[ExamType, int]] = set()
    merged: list[ComprehensiveSchedule] = []

    # 1. image-led records
    for image in image_fragments:
        if image.session_number is None:
            logger.warning("Image fragment without session_number dropped: %s", image.notes or image.exam_date)
            continue
        key = image.key
        if key in processed:
            logger.warning("Duplicate image fragment for %s %d차 ignored", key[0].value, key[1])
            continue
        merged.append(_from_image(image, crawled_by_key.get(key), deadlines.find(*key)))
        processed.add(key)

    # 2. crawl-led records not covered by the image
    for session in crawled_sessions:
        key = session.key
        if key in processed:
            continue
        merged.append(_from_crawled(session, deadlines.find(*key)))
        processed.add(key)

    # 3. internal-only records for every uncovered number in each range
    for deadline in internal_deadlines:
        for number in session_numbers(deadline.session_range):
            key = (deadline.exam_type, number)
            if key in processed:
                continue
            merged.append(_from_internal(deadline, number))
            processed.add(key)

    logger.info(
        "Merged %d image / %d crawled / %d internal into %d schedules",
        len(image_fragments),
        len(crawled_sessions),
        len(internal_deadlines),
        len(merged),
    )
    return merged


def expected_keys(
    image_fragments: list[ScheduleFragment],
    crawled_sessions: list[GroupedSession],
    internal_deadlines: list[InternalDeadline],
) -> set[tuple[ExamType, int]]:
    """Every key the merge output must contain exactly once."""
    keys = {f.key for f in image_fragments if f.session_number is not None}
    keys.update(s.key for s in crawled_sessions)
    for deadline in internal_deadlines:
        keys.update((deadline.exam_type, n) for n in session_numbers(deadline.session_range))
    return keys
