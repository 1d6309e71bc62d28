"""Event admin controllers package."""

from .check_in import EventAdminCheckInController
from .core import EventAdminCoreController
from .registrations import EventAdminRegistrationsController

EVENT_ADMIN_CONTROLLERS: list[type] = [
    EventAdminCoreController,
    EventAdminCheckInController,
    EventAdminRegistrationsController,
]

__all__ = [
    "EventAdminCoreController",
    "EventAdminCheckInController",
    "EventAdminRegistrationsController",
    "EVENT_ADMIN_CONTROLLERS",
]
