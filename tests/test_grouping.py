"""날짜별 그룹화 테스트"""

from datetime import date

import pytest

from exam_schedule.grouping import group_by_date
from exam_schedule.schema import FragmentSource, ScheduleFragment

from .factories import crawled


class TestGroupByDate:
    """크롤링 행 → 날짜별 차수 테스트"""

    def test_sessions_numbered_in_date_order(self, november_rows):
        sessions = group_by_date(november_rows)

        assert [s.session_number for s in sessions] == [1, 2]
        assert sessions[0].exam_date == date(2025, 11, 10)
        assert sessions[0].locations == ["서울", "인천"]
        assert sessions[0].region_codes == ["10", "12"]
        assert sessions[1].exam_date == date(2025, 11, 17)
        assert sessions[1].locations == ["부산"]

    def test_representative_row_supplies_shared_fields(self, november_rows):
        first = group_by_date(november_rows)[0]

        assert first.registration_period == "10.20~10.24"
        assert first.exam_time_start == "10:00"
        assert first.source == FragmentSource.CRAWLED

    def test_notes_summarise_locations(self, november_rows):
        first = group_by_date(november_rows)[0]
        assert first.notes == "2025-11-10 - 서울, 인천 (2개 지역)"

    def test_duplicate_region_rows_collapse(self):
        rows = [crawled("서울", date(2025, 11, 10)), crawled("서울", date(2025, 11, 10))]
        sessions = group_by_date(rows)

        assert len(sessions) == 1
        assert sessions[0].locations == ["서울"]

    def test_empty_input(self):
        assert group_by_date([]) == []

    def test_rejects_non_crawled_fragment(self):
        image = ScheduleFragment(year=2025, session_number=1, exam_date=date(2025, 11, 10), source=FragmentSource.IMAGE)
        with pytest.raises(ValueError):
            group_by_date([image])

    def test_rejects_missing_exam_date(self):
        with pytest.raises(ValueError):
            group_by_date([ScheduleFragment(year=2025, region_name="서울", source=FragmentSource.CRAWLED)])
