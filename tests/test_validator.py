"""병합 결과 검증 테스트"""

from datetime import date

from exam_schedule.schema import ComprehensiveSchedule, DataSource, ExamType
from exam_schedule.validator import validate_schedules


def _schedule(number: int, **kwargs) -> ComprehensiveSchedule:
    fields = dict(
        year=2025,
        exam_type=ExamType.LIFE,
        session_number=number,
        exam_date=date(2025, 11, 10),
        locations=["서울"],
        data_source=DataSource.CRAWLED_ONLY,
    )
    fields.update(kwargs)
    return ComprehensiveSchedule(**fields)


class TestValidateSchedules:
    """검증 레이어 테스트"""

    def test_clean_list_is_valid(self):
        result = validate_schedules([_schedule(1), _schedule(2)])

        assert result.is_valid
        assert result.total_errors == 0
        assert result.total_warnings == 0

    def test_duplicate_key_is_error(self):
        result = validate_schedules([_schedule(1), _schedule(1)])

        assert not result.is_valid
        assert any("appears 2 times" in i.message for i in result.issues)

    def test_missing_expected_key_is_error(self):
        result = validate_schedules([_schedule(1)], expected_keys={(ExamType.LIFE, 1), (ExamType.LIFE, 2)})

        assert not result.is_valid
        assert result.issues[0].session_number == 2

    def test_numbering_gap_is_warning(self):
        result = validate_schedules([_schedule(1), _schedule(3)])

        assert result.is_valid
        assert any("missing session numbers 2" in i.message for i in result.issues)

    def test_deadline_after_exam_is_warning(self):
        s = _schedule(1, internal_deadline_date=date(2025, 11, 12), has_internal_deadline=True)
        result = validate_schedules([s])

        assert result.total_warnings == 1

    def test_notice_before_deadline_is_warning(self):
        s = _schedule(
            1,
            internal_deadline_date=date(2025, 11, 4),
            notice_date=date(2025, 11, 3),
            has_internal_deadline=True,
        )
        result = validate_schedules([s])

        assert result.total_warnings == 1
        assert "precedes deadline" in result.issues[0].message

    def test_internal_only_without_exam_date_is_fine(self):
        s = _schedule(1, exam_date=None, locations=[], data_source=DataSource.INTERNAL_ONLY)
        assert validate_schedules([s]).total_warnings == 0

    def test_dated_schedule_without_locations_is_warning(self):
        result = validate_schedules([_schedule(1, locations=[])])
        assert result.total_warnings == 1
