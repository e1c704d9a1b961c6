"""
Domain services for alteration scheduling.

Each service is constructed explicitly with the repositories (or unit of
work) it needs; see ``alterations.application.service_factory``.
"""

from .calendar_service import ShopCalendar
from .capacity_service import CapacityService
from .garment_lifecycle import GarmentLifecycleService, roll_up_status
from .job_intake import JobIntakeService, NewPart
from .job_scheduler import JobScheduler
from .staff_availability_service import StaffAvailabilityService
from .workload_balancer import WorkloadBalancer

__all__ = [
    "CapacityService",
    "GarmentLifecycleService",
    "JobIntakeService",
    "JobScheduler",
    "NewPart",
    "ShopCalendar",
    "StaffAvailabilityService",
    "WorkloadBalancer",
    "roll_up_status",
]
