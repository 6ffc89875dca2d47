"""
Schedule persistence.
종합 일정을 (연도, 시험종류, 차수) 기준으로 UPSERT 저장합니다.
"""

import json
import logging
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

from .schema import ComprehensiveSchedule, ExamType, StoredDataSource

logger = logging.getLogger(__name__)

_DATA_SOURCE_MAPPING: dict[str, StoredDataSource] = {
    # comprehensive parse results
    "comprehensive_match": StoredDataSource.COMBINED,
    "image_internal": StoredDataSource.COMBINED,
    "image_crawled": StoredDataSource.COMBINED,
    "crawled_internal": StoredDataSource.COMBINED,
    "image_only": StoredDataSource.OFFICIAL_ONLY,
    "crawled_only": StoredDataSource.OFFICIAL_ONLY,
    "official_crawled": StoredDataSource.OFFICIAL_ONLY,
    "internal_only": StoredDataSource.INTERNAL_ONLY,
    # grouped crawl results
    "crawled_grouped": StoredDataSource.COMBINED,
    # already-stored values
    "combined": StoredDataSource.COMBINED,
    "official_only": StoredDataSource.OFFICIAL_ONLY,
    "manual": StoredDataSource.MANUAL,
}

StoreKey = tuple[int, ExamType, int]


def map_data_source_for_storage(data_source) -> StoredDataSource:
    """Reduce a merge provenance value to the stored enum; unknown → combined."""
    value = getattr(data_source, "value", data_source)
    return _DATA_SOURCE_MAPPING.get(str(value), StoredDataSource.COMBINED)


class StoredSchedule(BaseModel):
    """A persisted schedule row."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    year: int
    exam_type: ExamType
    session_number: int
    session_range: str | None = None
    exam_date: str | None = None
    exam_time_start: str | None = None
    exam_time_end: str | None = None
    locations: list[str] = Field(default_factory=list)
    registration_period: str | None = None
    result_date: str | None = None
    internal_deadline_date: str | None = None
    internal_deadline_time: str | None = None
    notice_date: str | None = None
    notice_time: str | None = None
    has_internal_deadline: bool = False
    data_source: StoredDataSource
    notes: str | None = None
    combined_notes: str | None = None
    created_at: str
    updated_at: str

    @property
    def key(self) -> StoreKey:
        return (self.year, self.exam_type, self.session_number)


class UpsertError(BaseModel):
    index: int
    session_number: int | None = None
    error: str


class UpsertReport(BaseModel):
    total_processed: int = 0
    inserted: int = 0
    updated: int = 0
    errors: list[UpsertError] = Field(default_factory=list)

    @property
    def success_count(self) -> int:
        return self.inserted + self.updated


def _row_fields(schedule: ComprehensiveSchedule) -> dict:
    data = schedule.model_dump(mode="json", exclude={"data_source", "region_codes"})
    data["data_source"] = map_data_source_for_storage(schedule.data_source)
    data["notes"] = data["notes"] or None
    data["combined_notes"] = data["combined_notes"] or None
    return data


class ScheduleStore(ABC):
    """Idempotent schedule store keyed by (year, exam_type, session_number)."""

    def __init__(self):
        self._rows: dict[StoreKey, StoredSchedule] = {}
        self._lock = threading.Lock()

    def upsert(self, schedules: list[ComprehensiveSchedule]) -> UpsertReport:
        """Insert new keys, overwrite existing ones. Re-submitting is a no-op on row count."""
        report = UpsertReport(total_processed=len(schedules))
        now = datetime.now(timezone.utc).isoformat()

        with self._lock:
            # Work on a copy; self._rows only changes once the copy is persisted
            rows = dict(self._rows)
            for index, schedule in enumerate(schedules, start=1):
                try:
                    fields = _row_fields(schedule)
                    key = (schedule.year, schedule.exam_type, schedule.session_number)
                    existing = rows.get(key)
                    if existing is None:
                        rows[key] = StoredSchedule(**fields, created_at=now, updated_at=now)
                        report.inserted += 1
                    else:
                        rows[key] = StoredSchedule(
                            **fields, id=existing.id, created_at=existing.created_at, updated_at=now
                        )
                        report.updated += 1
                except (ValueError, TypeError) as e:
                    logger.error("Schedule %d could not be stored: %s", index, e)
                    report.errors.append(
                        UpsertError(index=index, session_number=getattr(schedule, "session_number", None), error=str(e))
                    )
            self._flush(rows)
            self._rows = rows

        logger.info(
            "Upsert: %d inserted, %d updated, %d failed",
            report.inserted,
            report.updated,
            len(report.errors),
        )
        return report

    def list_schedules(self, year: int | None = None, exam_type: ExamType | None = None) -> list[StoredSchedule]:
        with self._lock:
            rows = list(self._rows.values())
        if year is not None:
            rows = [r for r in rows if r.year == year]
        if exam_type is not None:
            rows = [r for r in rows if r.exam_type == exam_type]
        return sorted(rows, key=lambda r: (r.year, r.exam_type.value, r.session_number))

    def get(self, year: int, exam_type: ExamType, session_number: int) -> StoredSchedule | None:
        with self._lock:
            return self._rows.get((year, exam_type, session_number))

    def __len__(self) -> int:
        return len(self._rows)

    def delete(self, year: int, exam_type: ExamType, session_number: int) -> bool:
        """Remove one row; False when the key is not stored."""
        key = (year, exam_type, session_number)
        with self._lock:
            if key not in self._rows:
                return False
            rows = {k: v for k, v in self._rows.items() if k != key}
            self._flush(rows)
            self._rows = rows
        logger.info("Deleted %s %d차 (%d)", exam_type.value, session_number, year)
        return True

    @abstractmethod
    def _flush(self, rows: dict[StoreKey, StoredSchedule]) -> None:
        """Persist *rows* (called with the lock held, before they replace self._rows)."""


class InMemoryScheduleStore(ScheduleStore):
    """Process-local store; contents are lost on restart."""

    def _flush(self, rows: dict[StoreKey, StoredSchedule]) -> None:
        pass


class JsonFileScheduleStore(ScheduleStore):
    """Store backed by a single JSON file, rewritten atomically on each upsert."""

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            with open(self.path, encoding="utf-8") as f:
                for raw in json.load(f):
                    row = StoredSchedule.model_validate(raw)
                    self._rows[row.key] = row
            logger.info("Loaded %d schedules from %s", len(self._rows), self.path)

    def _flush(self, rows: dict[StoreKey, StoredSchedule]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in rows.values()]
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".schedules-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def create_store(path: str | None) -> ScheduleStore:
    """JSON file store when a path is configured, in-memory otherwise."""
    if path:
        return JsonFileScheduleStore(path)
    return InMemoryScheduleStore()
