"""Organization-role checks for organizer operations.

Callers consult the gate before any registration data is read, so a failed check never
leaks partial data.
"""

from uuid import UUID

import structlog

from accounts.identity import Identity, MembershipRole
from events.exceptions import AuthorizationError

logger = structlog.get_logger(__name__)


def authorize(identity: Identity | None, org_id: UUID, required_role: MembershipRole | None = None) -> bool:
    """Check whether identity belongs to the organization with a sufficient role.

    Args:
        identity: The resolved caller, None for anonymous callers.
        org_id: The organization that owns the resource.
        required_role: The minimum role. Admin satisfies any requirement, member only member.

    Returns:
        True if the identity holds a membership in org_id satisfying required_role.
    """
    if identity is None:
        return False
    role = identity.role_in(org_id)
    if role is None:
        return False
    if required_role is None:
        return True
    return role.satisfies(required_role)


def require(identity: Identity | None, org_id: UUID, required_role: MembershipRole | None = None) -> Identity:
    """Like authorize, but raise AuthorizationError on failure.

    Returns:
        The identity, narrowed to non-None.
    """
    if identity is None or not authorize(identity, org_id, required_role):
        logger.info(
            "access_denied",
            identity_id=str(identity.id) if identity else None,
            organization_id=str(org_id),
            required_role=required_role,
        )
        raise AuthorizationError()
    return identity
