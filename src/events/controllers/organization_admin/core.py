from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.schema import ValidationErrorResponse
from common.throttling import WriteThrottle
from events import models, schema
from events.service import event_service, organization_service

from .base import OrganizationAdminBaseController


@api_controller("/organization-admin/{slug}", auth=JWTAuth(), tags=["Organization Admin"], throttle=WriteThrottle())
class OrganizationAdminCoreController(OrganizationAdminBaseController):
    """Organization settings and event creation."""

    @route.put(
        "",
        url_name="edit_organization",
        response={200: schema.OrganizationRetrieveSchema, 400: ValidationErrorResponse},
    )
    def update_organization(self, slug: str, payload: schema.OrganizationEditSchema) -> models.Organization:
        """Update the organization. The slug cannot be changed."""
        organization = self.get_one(slug)
        return organization_service.update_organization(organization, **payload.to_update_kwargs())

    @route.post(
        "/events",
        url_name="create_event",
        response={201: schema.EventDetailSchema, 400: ValidationErrorResponse},
    )
    def create_event(self, slug: str, payload: schema.EventCreateSchema) -> tuple[int, models.Event]:
        """Create an event. Its type is set by the type field of the details payload."""
        organization = self.get_one(slug)
        event = event_service.create_event(organization, self.user(), **payload.to_model_kwargs())
        return 201, event
