"""테스트용 데이터 생성 헬퍼"""

from datetime import date

from exam_schedule.regions import region_code
from exam_schedule.schema import FragmentSource, ScheduleFragment

DEADLINE_TEXT = """\
1~4차 시험접수마감: 11월 4일(화) 오전 11시
수험표 공지 예정 : 11월 7일(금) 오후 2시 이후
5~8차 시험접수마감: 11월 18일(화) 오후 3시 30분
"""


def crawled(region: str, exam_date: date, **kwargs) -> ScheduleFragment:
    fields = dict(
        year=exam_date.year,
        exam_date=exam_date,
        exam_time_start="10:00",
        exam_time_end="12:00",
        region_name=region,
        region_code=region_code(region),
        locations=[region],
        source=FragmentSource.CRAWLED,
    )
    fields.update(kwargs)
    return ScheduleFragment(**fields)


def image(session_number: int | None, exam_date: date | None = None, **kwargs) -> ScheduleFragment:
    fields = dict(year=2025, session_number=session_number, exam_date=exam_date, source=FragmentSource.IMAGE)
    fields.update(kwargs)
    return ScheduleFragment(**fields)
