"""
Rule-based deadline extractor (no network).
줄 단위 패턴으로 내부 마감일정을 파싱합니다.
"""

from ..deadlines import parse_internal_deadlines
from ..schema import ExamType, InternalDeadline
from .base import DeadlineExtractor


class RuleDeadlineClient(DeadlineExtractor):
    """DeadlineExtractor backed by parse_internal_deadlines()."""

    model_name = "rules"

    def extract_deadlines(
        self,
        text: str,
        year: int,
        exam_type: ExamType = ExamType.LIFE,
    ) -> list[InternalDeadline]:
        return parse_internal_deadlines(text, year, exam_type=exam_type)
