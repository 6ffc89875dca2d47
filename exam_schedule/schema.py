"""
Pydantic models for exam schedule reconciliation.
시험 일정 조합(크롤링/이미지/내부 마감) 결과를 위한 데이터 스키마 정의.
"""

from datetime import date
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .dates import normalize_time

# Highest session number accepted from any source
MAX_SESSION_NUMBER = 99


class ExamType(str, Enum):
    """보험설계사 시험 종류"""

    LIFE = "생보"
    NON_LIFE = "손보"
    THIRD_SECTOR = "제3보험"


class FragmentSource(str, Enum):
    """Which collaborator produced a fragment."""

    IMAGE = "image"
    CRAWLED = "crawled"
    INTERNAL = "internal"


class DataSource(str, Enum):
    """Provenance of a merged schedule (which streams contributed)."""

    COMPREHENSIVE_MATCH = "comprehensive_match"
    IMAGE_INTERNAL = "image_internal"
    IMAGE_CRAWLED = "image_crawled"
    CRAWLED_INTERNAL = "crawled_internal"
    IMAGE_ONLY = "image_only"
    CRAWLED_ONLY = "crawled_only"
    INTERNAL_ONLY = "internal_only"


class StoredDataSource(str, Enum):
    """Reduced provenance enum accepted by the schedule store."""

    COMBINED = "combined"
    OFFICIAL_ONLY = "official_only"
    INTERNAL_ONLY = "internal_only"
    MANUAL = "manual"


class _TimeFieldsMixin(BaseModel):
    """Normalises every *_time field to zero-padded HH:MM (or None)."""

    @field_validator(
        "exam_time_start",
        "exam_time_end",
        "internal_deadline_time",
        "notice_time",
        "deadline_time",
        mode="before",
        check_fields=False,
    )
    @classmethod
    def _normalize_time(cls, value):
        return normalize_time(value)


class ScheduleFragment(_TimeFieldsMixin):
    """한 수집원에서 얻은 차수 정보 조각 (병합 전)"""

    year: int
    exam_type: ExamType = ExamType.LIFE
    session_number: int | None = Field(None, ge=1, le=MAX_SESSION_NUMBER)
    session_range: str | None = None
    exam_date: date | None = None
    exam_time_start: str | None = None
    exam_time_end: str | None = None
    region_name: str | None = None
    region_code: str | None = None
    registration_period: str | None = None
    result_date: date | None = None
    internal_deadline_date: date | None = None
    internal_deadline_time: str | None = None
    notice_date: date | None = None
    notice_time: str | None = None
    locations: list[str] = Field(default_factory=list)
    notes: str = ""
    source: FragmentSource

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[ExamType, int | None]:
        return (self.exam_type, self.session_number)


class GroupedSession(_TimeFieldsMixin):
    """날짜별로 묶인 크롤링 차수"""

    year: int
    exam_type: ExamType = ExamType.LIFE
    session_number: int = Field(ge=1)
    exam_date: date
    exam_time_start: str | None = None
    exam_time_end: str | None = None
    locations: list[str] = Field(default_factory=list)
    region_codes: list[str] = Field(default_factory=list)
    registration_period: str | None = None
    result_date: date | None = None
    notes: str = ""
    source: FragmentSource = FragmentSource.CRAWLED

    @property
    def key(self) -> tuple[ExamType, int]:
        return (self.exam_type, self.session_number)


class InternalDeadline(_TimeFieldsMixin):
    """본사 자체 신청 마감일 (차수 범위 단위)"""

    year: int
    exam_type: ExamType = ExamType.LIFE
    session_range: str = Field(description="e.g. '1~4' or '5'")
    deadline_date: date | None = None
    deadline_time: str | None = None
    notice_date: date | None = None
    notice_time: str | None = None
    notes: str = ""
    source: FragmentSource = FragmentSource.INTERNAL


class ComprehensiveSchedule(_TimeFieldsMixin):
    """세 수집원을 종합한 최종 차수 일정"""

    year: int
    exam_type: ExamType
    session_number: int = Field(ge=1, le=MAX_SESSION_NUMBER)
    session_range: str | None = None
    exam_date: date | None = None
    exam_time_start: str | None = None
    exam_time_end: str | None = None
    locations: list[str] = Field(default_factory=list)
    region_codes: list[str] = Field(default_factory=list)
    registration_period: str | None = None
    result_date: date | None = None
    internal_deadline_date: date | None = None
    internal_deadline_time: str | None = None
    notice_date: date | None = None
    notice_time: str | None = None
    has_internal_deadline: bool = False
    data_source: DataSource
    notes: str = ""
    combined_notes: str = ""

    @property
    def key(self) -> tuple[ExamType, int]:
        return (self.exam_type, self.session_number)


class ImageExtraction(BaseModel):
    """Output of the image extraction collaborator."""

    extracted_text: str = ""
    schedules: list[ScheduleFragment] = Field(default_factory=list)


class RegionError(BaseModel):
    region: str
    code: str
    error: str


class RegionSummary(BaseModel):
    region: str
    code: str
    schedule_count: int


class CrawlReport(BaseModel):
    """지역별 크롤링 결과"""

    year: int
    month: int
    fragments: list[ScheduleFragment] = Field(default_factory=list)
    regions_processed: list[RegionSummary] = Field(default_factory=list)
    errors: list[RegionError] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        """True when at least one region could not be crawled."""
        return bool(self.errors)


class SourceError(BaseModel):
    """A collaborator that failed during reconciliation."""

    source: FragmentSource
    message: str


class ValidationIssue(BaseModel):
    """Single validation issue found in a merged schedule list."""

    level: Literal["error", "warning"] = Field(description="'error' or 'warning'")
    session_number: int | None = None
    message: str


class ValidationResult(BaseModel):
    """Result of validating a merged schedule list."""

    is_valid: bool
    total_errors: int = 0
    total_warnings: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)


class ReconcileSummary(BaseModel):
    total_schedules: int = 0
    image_count: int = 0
    crawled_count: int = 0
    grouped_count: int = 0
    internal_count: int = 0
    fully_matched_count: int = 0
    crawl_partial: bool = False


class ReconcileResult(BaseModel):
    """종합 파싱 결과 및 중간 데이터"""

    year: int
    month: int
    extracted_image_text: str = ""
    image_schedules: list[ScheduleFragment] = Field(default_factory=list)
    crawled_schedules: list[ScheduleFragment] = Field(default_factory=list)
    grouped_sessions: list[GroupedSession] = Field(default_factory=list)
    internal_deadlines: list[InternalDeadline] = Field(default_factory=list)
    schedules: list[ComprehensiveSchedule] = Field(default_factory=list)
    source_errors: list[SourceError] = Field(default_factory=list)
    crawl_errors: list[RegionError] = Field(default_factory=list)
    summary: ReconcileSummary = Field(default_factory=ReconcileSummary)
    validation: ValidationResult | None = None
