"""Organization admin controllers package."""

from .core import OrganizationAdminCoreController
from .members import OrganizationAdminMembersController

ORGANIZATION_ADMIN_CONTROLLERS: list[type] = [
    OrganizationAdminCoreController,
    OrganizationAdminMembersController,
]

__all__ = [
    "OrganizationAdminCoreController",
    "OrganizationAdminMembersController",
    "ORGANIZATION_ADMIN_CONTROLLERS",
]
