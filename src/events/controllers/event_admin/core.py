from uuid import UUID

from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from accounts.identity import MembershipRole
from common.throttling import WriteThrottle
from events import models, schema
from events.service import event_service

from .base import EventAdminBaseController


@api_controller("/event-admin/{event_id}", auth=JWTAuth(), tags=["Event Admin"], throttle=WriteThrottle())
class EventAdminCoreController(EventAdminBaseController):
    """Event lifecycle operations reserved to organization admins."""

    @route.post("/cancel", url_name="cancel_event", response=schema.EventDetailSchema)
    def cancel_event(self, event_id: UUID) -> models.Event:
        """Cancel the event. It stops accepting registrations; existing ones are kept."""
        event = self.get_one(event_id, MembershipRole.ADMIN)
        return event_service.cancel_event(event)
