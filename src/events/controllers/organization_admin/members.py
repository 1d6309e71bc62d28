from uuid import UUID

from django.db.models import QuerySet
from ninja_extra import api_controller, route
from ninja_extra.pagination import PageNumberPaginationExtra, PaginatedResponseSchema, paginate
from ninja_jwt.authentication import JWTAuth

from accounts.identity import MembershipRole
from accounts.models import RollcallUser
from common.schema import ValidationErrorResponse
from common.throttling import UserDefaultThrottle, WriteThrottle
from events import models, schema
from events.exceptions import NotFoundError
from events.service import organization_service

from .base import OrganizationAdminBaseController


@api_controller("/organization-admin/{slug}", auth=JWTAuth(), tags=["Organization Admin"], throttle=WriteThrottle())
class OrganizationAdminMembersController(OrganizationAdminBaseController):
    """Organization membership management."""

    def get_member(self, organization: models.Organization, user_id: UUID) -> models.OrganizationMember:
        """Get a membership of the organization or raise NotFoundError."""
        member = (
            models.OrganizationMember.objects.select_related("organization")
            .filter(organization=organization, user_id=user_id)
            .first()
        )
        if member is None:
            raise NotFoundError()
        return member

    @route.get(
        "/members",
        url_name="list_members",
        response=PaginatedResponseSchema[schema.OrganizationMemberSchema],
        throttle=UserDefaultThrottle(),
    )
    @paginate(PageNumberPaginationExtra, page_size=50)
    def list_members(self, slug: str) -> QuerySet[models.OrganizationMember]:
        """List the members of the organization."""
        organization = self.get_one(slug, MembershipRole.MEMBER)
        return models.OrganizationMember.objects.filter(organization=organization)

    @route.post(
        "/members",
        url_name="add_member",
        response={201: schema.OrganizationMemberSchema, 400: ValidationErrorResponse},
    )
    def add_member(self, slug: str, payload: schema.MemberAddSchema) -> tuple[int, models.OrganizationMember]:
        """Add a user to the organization."""
        organization = self.get_one(slug)
        user = RollcallUser.objects.filter(pk=payload.user_id, is_active=True).first()
        if user is None:
            raise NotFoundError()
        return 201, organization_service.add_member(organization, user, payload.role)

    @route.put(
        "/members/{user_id}",
        url_name="set_member_role",
        response={200: schema.OrganizationMemberSchema, 400: ValidationErrorResponse},
    )
    def set_member_role(
        self, slug: str, user_id: UUID, payload: schema.MemberRoleSchema
    ) -> models.OrganizationMember:
        """Change the role of a member."""
        organization = self.get_one(slug)
        return organization_service.set_member_role(self.get_member(organization, user_id), payload.role)

    @route.delete("/members/{user_id}", url_name="remove_member", response={204: None, 400: ValidationErrorResponse})
    def remove_member(self, slug: str, user_id: UUID) -> tuple[int, None]:
        """Remove a member from the organization."""
        organization = self.get_one(slug)
        organization_service.remove_member(organization, self.get_member(organization, user_id).user)
        return 204, None
