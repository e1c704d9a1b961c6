"""
Repository implementations for database operations.

Each repository wraps one aggregate's tables and is handed the session owned
by the current unit of work.
"""

from .assignment_log_repository import AssignmentLogRepository
from .base import BaseRepository
from .holiday_repository import HolidayRepository
from .job_repository import JobRepository
from .scan_log_repository import ScanLogRepository
from .staff_repository import StaffRepository
from .work_day_repository import WorkDayRepository

__all__ = [
    "AssignmentLogRepository",
    "BaseRepository",
    "HolidayRepository",
    "JobRepository",
    "ScanLogRepository",
    "StaffRepository",
    "WorkDayRepository",
]
