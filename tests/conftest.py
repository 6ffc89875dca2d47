"""공용 테스트 픽스처"""

from datetime import date

import pytest

from exam_schedule.schema import ScheduleFragment

from .factories import DEADLINE_TEXT, crawled


@pytest.fixture
def november_rows() -> list[ScheduleFragment]:
    """서울/인천 11월 10일, 부산 11월 17일 (입력 순서 뒤섞임)"""
    return [
        crawled("부산", date(2025, 11, 17)),
        crawled("서울", date(2025, 11, 10), registration_period="10.20~10.24"),
        crawled("인천", date(2025, 11, 10)),
    ]


@pytest.fixture
def deadline_text() -> str:
    return DEADLINE_TEXT
