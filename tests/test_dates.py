"""날짜/시각 변환 테스트"""

from datetime import date, time

import pytest

from exam_schedule.dates import make_date, normalize_time, parse_korean_date, to_24h


class TestTo24h:
    """오전/오후 → 24시간제 변환 테스트"""

    def test_afternoon_adds_twelve(self):
        assert to_24h("오후", 2) == "14:00"
        assert to_24h("오후", 11, 30) == "23:30"

    def test_noon_and_midnight(self):
        assert to_24h("오후", 12) == "12:00"
        assert to_24h("오전", 12) == "00:00"

    def test_morning_is_zero_padded(self):
        assert to_24h("오전", 9) == "09:00"
        assert to_24h("오전", 11, 5) == "11:05"

    @pytest.mark.parametrize("meridiem,hour,minute", [("정오", 1, 0), ("오전", 0, 0), ("오후", 13, 0), ("오전", 9, 60)])
    def test_invalid_input_raises(self, meridiem, hour, minute):
        with pytest.raises(ValueError):
            to_24h(meridiem, hour, minute)


class TestParseKoreanDate:
    """한국어 날짜 파싱 테스트"""

    def test_month_day_uses_given_year(self):
        assert parse_korean_date("11월 10일(월)", 2025) == date(2025, 11, 10)

    def test_dotted_and_dashed_dates_carry_their_own_year(self):
        assert parse_korean_date("2026.01.05", 2025) == date(2026, 1, 5)
        assert parse_korean_date("2025-11-17(월)", 2024) == date(2025, 11, 17)

    def test_impossible_date_is_none(self):
        assert parse_korean_date("2월 30일", 2025) is None
        assert make_date(2025, 13, 1) is None

    def test_no_date(self):
        assert parse_korean_date("접수 기간 미정", 2025) is None
        assert parse_korean_date(None, 2025) is None


class TestNormalizeTime:
    def test_string_forms(self):
        assert normalize_time("9:00") == "09:00"
        assert normalize_time("14:00:00") == "14:00"
        assert normalize_time("10") == "10:00"

    def test_time_object(self):
        assert normalize_time(time(9, 5)) == "09:05"

    def test_unparseable(self):
        assert normalize_time(None) is None
        assert normalize_time("오후 2시") is None
        assert normalize_time("25:00") is None
