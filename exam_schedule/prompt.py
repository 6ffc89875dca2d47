"""
Prompts for the schedule extraction models.
시험일정표 이미지 / 내부 마감 텍스트 파싱 프롬프트.
"""

from functools import lru_cache

from .regions import REGION_GROUPS


def _region_rules() -> str:
    lines = []
    for group, cities in REGION_GROUPS.items():
        quoted = ", ".join('"%s"' % c for c in cities)
        lines.append(f"- {group} → [{quoted}]")
    return "\n".join(lines)


@lru_cache()
def get_image_prompt(year: int) -> str:
    """Prompt for extracting per-session details from a schedule image."""
    return f"""이 이미지는 보험설계사 시험일정표입니다.

차수별 상세 정보를 정확히 추출해주세요:

1. **차수 정보**: 1차, 2차, 3차... 등
2. **시험 날짜**: 각 차수별 정확한 시험일
3. **지역 정보**: 각 차수별 시험 지역
4. **시간 정보**: 시험 시간 (있다면)

다음 JSON 형식으로만 응답해주세요:
{{
  "extracted_text": "전체 이미지 텍스트",
  "schedules": [
    {{
      "year": {year},
      "exam_type": "생보",
      "session_number": 1,
      "exam_date": "{year}-11-10",
      "exam_time_start": "10:00",
      "exam_time_end": "12:00",
      "locations": ["서울", "인천", "제주"],
      "notes": "이미지에서 추출된 차수별 정보"
    }}
  ]
}}

규칙:
- exam_type은 "생보", "손보", "제3보험" 중 하나
- 날짜는 YYYY-MM-DD, 시간은 24시간 HH:MM
- 연도가 표기되지 않았으면 {year}년으로 간주

지역 매핑 규칙:
{_region_rules()}
"""


@lru_cache()
def get_deadline_prompt(year: int) -> str:
    """System prompt for parsing internal deadline text."""
    return f"""내부 마감일정 텍스트를 파싱하여 JSON으로 변환하세요.
"N~M차 시험접수마감: X월 X일 오전/오후 X시" 줄은 새 마감 항목이며,
"수험표 공지 예정: X월 X일 ..." 줄은 바로 앞 마감 항목의 공지일입니다.

출력 형식 (JSON만 출력):
{{
  "schedules": [
    {{
      "year": {year},
      "exam_type": "생보",
      "session_range": "1~4",
      "internal_deadline_date": "{year}-11-04",
      "internal_deadline_time": "11:00",
      "notice_date": "{year}-11-07",
      "notice_time": "14:00",
      "notes": "본사 자체 신청 마감일"
    }}
  ]
}}

규칙:
- 날짜는 YYYY-MM-DD ({year}년 기준), 시간은 24시간 HH:MM ("오후 2시" → "14:00", "오전 12시" → "00:00")
- session_range는 "1~4" 또는 단일 차수 "5"
"""
