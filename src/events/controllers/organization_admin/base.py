from accounts.identity import MembershipRole
from common.controllers import UserAwareController
from events import models
from events.exceptions import NotFoundError
from events.service import access_gate


class OrganizationAdminBaseController(UserAwareController):
    """Base controller for organization admin endpoints.

    Subclasses should be decorated with @api_controller to register routes.
    """

    def get_one(self, slug: str, required_role: MembershipRole = MembershipRole.ADMIN) -> models.Organization:
        """Get one organization, if the caller holds required_role in it."""
        organization = models.Organization.objects.filter(slug=slug).first()
        if organization is None:
            raise NotFoundError()
        access_gate.require(self.identity(), organization.pk, required_role)
        return organization
