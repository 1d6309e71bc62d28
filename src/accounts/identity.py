"""The resolved principal that every registration operation receives explicitly.

An Identity is an immutable snapshot of who the caller is and which organizations they belong to.
It is resolved once per request from the authenticated user and passed down as an argument,
so services never read the request or any other ambient state.
"""

import typing as t
from uuid import UUID

from django.contrib.auth.models import AnonymousUser
from django.db import models
from pydantic import BaseModel, ConfigDict, model_validator

if t.TYPE_CHECKING:
    from accounts.models import RollcallUser


class MembershipRole(models.TextChoices):
    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"

    def satisfies(self, required: "MembershipRole") -> bool:
        """Admin satisfies any requirement, member satisfies only member."""
        return self == MembershipRole.ADMIN or self == required


class Membership(BaseModel):
    model_config = ConfigDict(frozen=True)

    org_id: UUID
    role: MembershipRole


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str | None = None
    email_verified: bool = False
    memberships: tuple[Membership, ...] = ()

    @model_validator(mode="after")
    def one_membership_per_organization(self) -> t.Self:
        """Reject identities holding two memberships for the same organization."""
        org_ids = [m.org_id for m in self.memberships]
        if len(org_ids) != len(set(org_ids)):
            raise ValueError("An identity can hold at most one membership per organization.")
        return self

    @property
    def org_ids(self) -> frozenset[UUID]:
        """Organizations this identity belongs to."""
        return frozenset(m.org_id for m in self.memberships)

    def role_in(self, org_id: UUID) -> MembershipRole | None:
        """Return the role held in the organization, if any."""
        for membership in self.memberships:
            if membership.org_id == org_id:
                return membership.role
        return None


def resolve_identity(user: "RollcallUser | AnonymousUser | None") -> Identity | None:
    """Resolve an authenticated user into an Identity.

    Returns None for anonymous or inactive users.
    """
    from events.models import OrganizationMember

    if user is None or user.is_anonymous or not user.is_active:
        return None
    rows = OrganizationMember.objects.filter(user_id=user.pk).values_list("organization_id", "role")
    return Identity(
        id=user.pk,
        email=user.email or None,
        email_verified=user.email_verified,
        memberships=tuple(Membership(org_id=org_id, role=MembershipRole(role)) for org_id, role in rows),
    )
