from uuid import UUID

from django.db.models import QuerySet
from ninja import Query
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_jwt.authentication import JWTAuth

from common.throttling import UserDefaultThrottle, WriteThrottle
from events import models, schema
from events.exceptions import NotFoundError
from events.service import registration_service

from .base import EventAdminBaseController


@api_controller("/event-admin/{event_id}", auth=JWTAuth(), tags=["Event Admin"], throttle=WriteThrottle())
class EventAdminRegistrationsController(EventAdminBaseController):
    """Registration management for organizers."""

    @route.get(
        "/registrations",
        url_name="list_registrations",
        response=PaginatedResponseSchema[schema.RegistrationSchema],
        throttle=UserDefaultThrottle(),
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_registrations(
        self,
        event_id: UUID,
        params: schema.RegistrationStatusFilter = Query(...),  # type: ignore[type-arg]
    ) -> QuerySet[models.Registration]:
        """List the registrations of an event in the order they were made."""
        return registration_service.list_by_event(event_id, self.identity(), status=params.status).unwrap()

    @route.get(
        "/attendance",
        url_name="attendance_summary",
        response=schema.AttendanceSummary,
        throttle=UserDefaultThrottle(),
    )
    def attendance_summary(self, event_id: UUID) -> schema.AttendanceSummary:
        """How many guests are confirmed, checked in and cancelled."""
        return registration_service.attendance_summary(event_id, self.identity()).unwrap()

    @route.post(
        "/registrations/{registration_id}/cancel",
        url_name="admin_cancel_registration",
        response=schema.RegistrationSchema,
    )
    def cancel_registration(self, event_id: UUID, registration_id: UUID) -> models.Registration:
        """Cancel a registration on behalf of the guest."""
        self.get_one(event_id)
        if not models.Registration.objects.filter(pk=registration_id, event_id=event_id).exists():
            raise NotFoundError()
        return registration_service.cancel_registration(registration_id, self.identity()).unwrap()
