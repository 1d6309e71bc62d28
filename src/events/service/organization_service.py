import typing as t

import structlog
from django.db import transaction
from django.utils.translation import gettext_lazy as _

from accounts.identity import MembershipRole
from accounts.models import RollcallUser
from events import tasks
from events.exceptions import AlreadyMemberError, ValidationError
from events.models import Organization, OrganizationMember
from events.service import update_db_instance

logger = structlog.get_logger(__name__)


@transaction.atomic
def create_organization(
    owner: RollcallUser,
    name: str,
    slug: str | None = None,
    description: str | None = None,
    logo_url: str | None = None,
) -> Organization:
    """Create a new organization.

    The owner becomes its first admin.

    Args:
        owner: The user who will own the organization
        name: The name of the organization
        slug: Optional URL slug, derived from the name if omitted
        description: Optional description for the organization
        logo_url: Optional logo for the organization

    Returns:
        The created Organization instance
    """
    organization = Organization.objects.create(
        name=name,
        slug=slug or "",
        owner=owner,
        description=description or "",
        logo_url=logo_url,
    )
    OrganizationMember.objects.create(organization=organization, user=owner, role=MembershipRole.ADMIN)
    logger.info("organization_created", organization_id=str(organization.pk), owner_id=str(owner.pk))
    return organization


def update_organization(organization: Organization, **data: t.Any) -> Organization:
    """Update an organization's editable fields.

    A name change is propagated to the events of the organization in the background.

    Raises:
        ValidationError: if the payload tries to change the slug.
    """
    if "slug" in data and data["slug"] != organization.slug:
        raise ValidationError({"slug": [str(_("The slug cannot be changed after creation."))]})
    data.pop("slug", None)
    old_name = organization.name
    organization = update_db_instance(organization, **data)
    if organization.name != old_name:
        organization_id = str(organization.pk)
        transaction.on_commit(lambda: tasks.sync_event_organization_names.delay(organization_id))
        logger.info("organization_renamed", organization_id=organization_id)
    return organization


def add_member(
    organization: Organization, user: RollcallUser, role: MembershipRole = MembershipRole.MEMBER
) -> OrganizationMember:
    """Add a user to an organization.

    Raises:
        AlreadyMemberError: if the user is already a member.
    """
    if OrganizationMember.objects.filter(organization=organization, user=user).exists():
        raise AlreadyMemberError
    member = OrganizationMember.objects.create(organization=organization, user=user, role=role)
    logger.info(
        "organization_member_added", organization_id=str(organization.pk), user_id=str(user.pk), role=str(role)
    )
    return member


def set_member_role(member: OrganizationMember, role: MembershipRole) -> OrganizationMember:
    """Change the role of a member. The owner always stays admin."""
    if member.user_id == member.organization.owner_id and role != MembershipRole.ADMIN:
        raise ValidationError({"role": [str(_("The owner of an organization cannot be demoted."))]})
    member.role = role
    member.save(update_fields=["role", "updated_at"])
    return member


def remove_member(organization: Organization, user: RollcallUser) -> None:
    """Remove a user from an organization. The owner cannot be removed."""
    if user.pk == organization.owner_id:
        raise ValidationError({"user_id": [str(_("The owner of an organization cannot be removed."))]})
    deleted, _deleted = OrganizationMember.objects.filter(organization=organization, user=user).delete()
    if deleted:
        logger.info("organization_member_removed", organization_id=str(organization.pk), user_id=str(user.pk))
