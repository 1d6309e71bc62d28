from ninja_extra import api_controller, route
from ninja_jwt.authentication import JWTAuth

from common.controllers import UserAwareController
from common.schema import ValidationErrorResponse
from common.throttling import WriteThrottle
from events import models, schema
from events.service import organization_service


@api_controller("/organizations", tags=["Organization"])
class OrganizationController(UserAwareController):
    @route.post(
        "",
        url_name="create_organization",
        response={201: schema.OrganizationRetrieveSchema, 400: ValidationErrorResponse},
        auth=JWTAuth(),
        throttle=WriteThrottle(),
    )
    def create_organization(self, payload: schema.OrganizationCreateSchema) -> tuple[int, models.Organization]:
        """Create an organization. The caller becomes its owner and first admin."""
        organization = organization_service.create_organization(
            owner=self.user(),
            name=payload.name,
            slug=payload.slug,
            description=payload.description,
            logo_url=str(payload.logo_url) if payload.logo_url else None,
        )
        return 201, organization

    @route.get("/{slug}", url_name="get_organization", response=schema.OrganizationRetrieveSchema)
    def get_organization(self, slug: str) -> models.Organization:
        """Get an organization by its slug."""
        return self.get_object_or_exception(models.Organization, slug=slug)  # type: ignore[no-any-return]
