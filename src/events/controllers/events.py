from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import OptionalAuth
from common.controllers import UserAwareController
from common.schema import ValidationErrorResponse
from common.throttling import GuestRegistrationThrottle
from events import models, schema
from events.service import event_service, registration_service


@api_controller("/events", auth=OptionalAuth(), tags=["Events"])
class EventController(UserAwareController):
    @route.get("/{event_id}", url_name="get_event", response=schema.EventDetailSchema)
    def get_event(self, event_id: UUID) -> models.Event:
        """Get an event with its type-specific details."""
        return event_service.get_by_id(event_id)

    @route.post(
        "/{event_id}/registrations",
        url_name="create_registration",
        response={201: schema.RegistrationCreatedSchema, 400: ValidationErrorResponse},
        throttle=GuestRegistrationThrottle(),
    )
    def create_registration(
        self, event_id: UUID, payload: schema.RegistrationCreateSchema
    ) -> tuple[int, models.Registration]:
        """Register a guest for an event.

        No account is needed. The response carries the QR payload to show at the door and a
        token that lets the guest cancel later. Both are returned only here.
        """
        registration = registration_service.create_registration(
            event_id,
            guest_name=payload.guest_name,
            guest_email=payload.guest_email,
            guest_phone=payload.guest_phone,
            custom_data=payload.custom_data,
        ).unwrap()
        return 201, registration
