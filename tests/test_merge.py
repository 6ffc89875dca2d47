"""3원 병합 테스트"""

from datetime import date

import pytest

from exam_schedule.deadlines import parse_internal_deadlines
from exam_schedule.grouping import group_by_date
from exam_schedule.merge import combine_notes, expected_keys, merge, resolve_data_source
from exam_schedule.schema import DataSource, ExamType, InternalDeadline

from .factories import image


class TestResolveDataSource:
    """출처 판정표 테스트"""

    @pytest.mark.parametrize(
        "flags,expected",
        [
            ((True, True, True), DataSource.COMPREHENSIVE_MATCH),
            ((True, True, False), DataSource.IMAGE_CRAWLED),
            ((True, False, True), DataSource.IMAGE_INTERNAL),
            ((True, False, False), DataSource.IMAGE_ONLY),
            ((False, True, True), DataSource.CRAWLED_INTERNAL),
            ((False, True, False), DataSource.CRAWLED_ONLY),
            ((False, False, True), DataSource.INTERNAL_ONLY),
        ],
    )
    def test_table(self, flags, expected):
        assert resolve_data_source(*flags) == expected

    def test_no_source_raises(self):
        with pytest.raises(ValueError):
            resolve_data_source(False, False, False)


class TestMerge:
    """병합 결과 테스트"""

    def test_every_key_appears_once(self, november_rows, deadline_text):
        images = [image(1, date(2025, 11, 10), locations=["서울"])]
        grouped = group_by_date(november_rows)
        deadlines = parse_internal_deadlines(deadline_text, 2025)

        result = merge(images, grouped, deadlines)

        keys = [s.key for s in result]
        assert len(keys) == len(set(keys))
        assert set(keys) == expected_keys(images, grouped, deadlines)
        assert [s.session_number for s in result] == [1, 2, 3, 4, 5, 6, 7, 8]

    def test_image_values_win_over_crawled(self, november_rows):
        images = [image(1, date(2025, 11, 11), exam_time_start="14:00", locations=["서울"])]
        (first, _) = merge(images, group_by_date(november_rows), [])

        assert first.exam_date == date(2025, 11, 11)
        assert first.exam_time_start == "14:00"
        assert first.locations == ["서울"]
        assert first.data_source == DataSource.IMAGE_CRAWLED

    def test_empty_image_fields_fall_back_to_crawled(self, november_rows):
        images = [image(1)]
        first = merge(images, group_by_date(november_rows), [])[0]

        assert first.exam_date == date(2025, 11, 10)
        assert first.exam_time_end == "12:00"
        assert first.locations == ["서울", "인천"]
        assert first.region_codes == ["10", "12"]
        assert first.registration_period == "10.20~10.24"

    def test_full_match_attaches_deadline(self, november_rows, deadline_text):
        images = [image(2, date(2025, 11, 17), locations=["부산"], notes="이미지")]
        deadlines = parse_internal_deadlines(deadline_text, 2025)

        second = merge(images, group_by_date(november_rows), deadlines)[0]

        assert second.data_source == DataSource.COMPREHENSIVE_MATCH
        assert second.has_internal_deadline is True
        assert second.session_range == "1~4"
        assert second.internal_deadline_date == date(2025, 11, 4)
        assert second.notice_time == "14:00"
        assert second.combined_notes.startswith("이미지 | 2025-11-17 - 부산")

    def test_crawled_and_internal_only_records(self, november_rows, deadline_text):
        result = merge([], group_by_date(november_rows), parse_internal_deadlines(deadline_text, 2025))
        by_number = {s.session_number: s for s in result}

        assert by_number[1].data_source == DataSource.CRAWLED_INTERNAL
        assert by_number[3].data_source == DataSource.INTERNAL_ONLY
        assert by_number[3].exam_date is None
        assert by_number[6].internal_deadline_time == "15:30"

    def test_crawled_without_deadline(self, november_rows):
        result = merge([], group_by_date(november_rows), [])
        assert {s.data_source for s in result} == {DataSource.CRAWLED_ONLY}
        assert all(not s.has_internal_deadline for s in result)

    def test_overlapping_ranges_do_not_duplicate(self):
        deadlines = [
            InternalDeadline(year=2025, session_range="1~4"),
            InternalDeadline(year=2025, session_range="3~6"),
        ]
        result = merge([], [], deadlines)

        assert [s.session_number for s in result] == [1, 2, 3, 4, 5, 6]
        assert result[2].session_range == "1~4"
        assert result[4].session_range == "3~6"

    def test_image_without_session_number_dropped(self):
        result = merge([image(None, date(2025, 11, 10))], [], [])
        assert result == []

    def test_duplicate_image_key_first_wins(self):
        images = [image(1, date(2025, 11, 10)), image(1, date(2025, 11, 11))]
        result = merge(images, [], [])

        assert len(result) == 1
        assert result[0].exam_date == date(2025, 11, 10)
        assert result[0].data_source == DataSource.IMAGE_ONLY

    def test_deadlines_match_within_exam_type(self):
        images = [image(1, date(2025, 11, 10), exam_type=ExamType.NON_LIFE)]
        deadlines = [InternalDeadline(year=2025, session_range="1~2", exam_type=ExamType.LIFE)]

        result = merge(images, [], deadlines)
        by_key = {s.key: s for s in result}

        assert by_key[(ExamType.NON_LIFE, 1)].data_source == DataSource.IMAGE_ONLY
        assert by_key[(ExamType.LIFE, 1)].data_source == DataSource.INTERNAL_ONLY
        assert len(result) == 3

    def test_all_empty(self):
        assert merge([], [], []) == []

    def test_out_of_bounds_deadline_range_adds_no_sessions(self):
        deadlines = [InternalDeadline(year=2025, session_range="1~100000000")]
        assert merge([], [], deadlines) == []


class TestCombineNotes:
    def test_skips_empty(self):
        assert combine_notes("a", None, "", "  ", "b") == "a | b"
