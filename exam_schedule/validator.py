"""
Post-merge validation layer for reconciled exam schedules.
종합된 차수 일정의 완전성과 일관성을 검증합니다.
"""

from collections import Counter
from datetime import date

from .schema import ComprehensiveSchedule, DataSource, ExamType, ValidationIssue, ValidationResult


def validate_schedules(
    schedules: list[ComprehensiveSchedule],
    expected_keys: set[tuple[ExamType, int]] | None = None,
) -> ValidationResult:
    """
    Validate a merged schedule list.

    Args:
        schedules: Output of merge()
        expected_keys: Keys that must each appear exactly once (from the inputs)

    Returns:
        ValidationResult with all issues found
    """
    issues: list[ValidationIssue] = []

    _validate_keys(schedules, issues, expected_keys)
    _validate_numbering_continuity(schedules, issues)
    _validate_dates(schedules, issues)
    _validate_locations(schedules, issues)

    errors = sum(1 for i in issues if i.level == "error")
    warnings = sum(1 for i in issues if i.level == "warning")

    return ValidationResult(
        is_valid=errors == 0,
        total_errors=errors,
        total_warnings=warnings,
        issues=issues,
    )


def _validate_keys(
    schedules: list[ComprehensiveSchedule],
    issues: list[ValidationIssue],
    expected_keys: set[tuple[ExamType, int]] | None,
):
    """Duplicate keys, invalid session numbers and keys lost during merge."""
    counts = Counter(s.key for s in schedules)
    for (exam_type, number), count in sorted(counts.items(), key=lambda kv: (kv[0][0].value, kv[0][1])):
        if count > 1:
            issues.append(
                ValidationIssue(
                    level="error",
                    session_number=number,
                    message=f"{exam_type.value} {number}차: appears {count} times",
                )
            )

    for s in schedules:
        if s.session_number < 1:
            issues.append(
                ValidationIssue(
                    level="error",
                    session_number=s.session_number,
                    message=f"{s.exam_type.value}: invalid session number {s.session_number}",
                )
            )

    if expected_keys is not None:
        for exam_type, number in sorted(expected_keys - set(counts), key=lambda k: (k[0].value, k[1])):
            issues.append(
                ValidationIssue(
                    level="error",
                    session_number=number,
                    message=f"{exam_type.value} {number}차: present in inputs but missing from result",
                )
            )


def _validate_numbering_continuity(schedules: list[ComprehensiveSchedule], issues: list[ValidationIssue]):
    """Warn about gaps in session numbering per exam type."""
    by_type: dict[ExamType, set[int]] = {}
    for s in schedules:
        by_type.setdefault(s.exam_type, set()).add(s.session_number)

    for exam_type, numbers in by_type.items():
        missing = set(range(min(numbers), max(numbers) + 1)) - numbers
        if missing:
            missing_str = ", ".join(str(n) for n in sorted(missing))
            issues.append(
                ValidationIssue(
                    level="warning",
                    message=f"{exam_type.value}: missing session numbers {missing_str}",
                )
            )


def _validate_dates(schedules: list[ComprehensiveSchedule], issues: list[ValidationIssue]):
    """
    날짜 일관성 검사 / Date consistency checks.

    - 내부 마감일은 시험일보다 앞서야 함
    - 수험표 공지일은 내부 마감일 이후여야 함
    - 내부 일정만 있는 차수를 제외하면 시험일이 있어야 함
    """
    for s in schedules:
        if s.exam_date is None:
            if s.data_source != DataSource.INTERNAL_ONLY:
                issues.append(
                    ValidationIssue(
                        level="warning",
                        session_number=s.session_number,
                        message=f"{s.session_number}차: no exam date ({s.data_source.value})",
                    )
                )
        elif s.internal_deadline_date and s.internal_deadline_date >= s.exam_date:
            issues.append(
                ValidationIssue(
                    level="warning",
                    session_number=s.session_number,
                    message=(
                        f"{s.session_number}차: internal deadline {s.internal_deadline_date} "
                        f"is not before exam date {s.exam_date}"
                    ),
                )
            )

        if _before(s.notice_date, s.internal_deadline_date):
            issues.append(
                ValidationIssue(
                    level="warning",
                    session_number=s.session_number,
                    message=f"{s.session_number}차: notice date {s.notice_date} precedes deadline {s.internal_deadline_date}",
                )
            )


def _validate_locations(schedules: list[ComprehensiveSchedule], issues: list[ValidationIssue]):
    for s in schedules:
        if s.exam_date is not None and not s.locations:
            issues.append(
                ValidationIssue(
                    level="warning",
                    session_number=s.session_number,
                    message=f"{s.session_number}차: exam date set but no locations",
                )
            )


def _before(a: date | None, b: date | None) -> bool:
    return a is not None and b is not None and a < b
