from uuid import UUID

from accounts.identity import MembershipRole
from common.controllers import UserAwareController
from events import models
from events.service import access_gate, event_service


class EventAdminBaseController(UserAwareController):
    """Base controller for event admin endpoints.

    Subclasses should be decorated with @api_controller to register routes.
    """

    def get_one(self, event_id: UUID, required_role: MembershipRole = MembershipRole.MEMBER) -> models.Event:
        """Get the event, if the caller holds required_role in its organization."""
        event = event_service.get_by_id(event_id)
        access_gate.require(self.identity(), event.organization_id, required_role)
        return event
