"""
Exam Schedule - Reconcile insurance exam schedules from the official registry,
schedule images and internal deadline notices.
"""

from .config import get_settings
from .grouping import group_by_date
from .merge import merge
from .pipeline import SchedulePipeline
from .schema import (
    ComprehensiveSchedule,
    DataSource,
    ExamType,
    GroupedSession,
    InternalDeadline,
    ReconcileResult,
    ScheduleFragment,
)

__all__ = [
    "SchedulePipeline",
    "ScheduleFragment",
    "GroupedSession",
    "InternalDeadline",
    "ComprehensiveSchedule",
    "ReconcileResult",
    "DataSource",
    "ExamType",
    "group_by_date",
    "merge",
    "get_settings",
]

__version__ = "1.0.0"
