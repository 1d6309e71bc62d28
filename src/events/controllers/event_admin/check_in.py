from uuid import UUID

from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.schema import ValidationErrorResponse
from common.throttling import CheckInThrottle
from events import models, schema
from events.service import registration_service

from .base import EventAdminBaseController


@api_controller("/event-admin/{event_id}", auth=JWTAuth(), tags=["Event Admin"], throttle=CheckInThrottle())
class EventAdminCheckInController(EventAdminBaseController):
    """Door scanning."""

    @route.post(
        "/check-in",
        url_name="check_in",
        response={
            200: schema.RegistrationSchema,
            400: ValidationErrorResponse,
            409: schema.InvalidStateResponse,
        },
    )
    def check_in(self, event_id: UUID, payload: schema.CheckInSchema) -> models.Registration:
        """Check a guest in by scanning their QR code.

        Send the scanned string as qr_payload, or the bare hash as qr_hash. A code that was
        already used is rejected with 409 and the time of the first check-in.
        """
        identity = self.identity()
        if payload.qr_payload:
            result = registration_service.check_in_payload(payload.qr_payload, identity, event_id=event_id)
        else:
            result = registration_service.check_in(payload.qr_hash or "", identity, event_id=event_id)
        return result.unwrap()
