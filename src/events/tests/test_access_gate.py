import uuid

import pytest

from accounts.identity import Identity, Membership, MembershipRole
from events.exceptions import AuthorizationError
from events.service import access_gate

ORG_A = uuid.uuid4()
ORG_B = uuid.uuid4()


def _identity(*memberships: tuple[uuid.UUID, MembershipRole]) -> Identity:
    return Identity(
        id=uuid.uuid4(),
        email="someone@example.com",
        memberships=tuple(Membership(org_id=org_id, role=role) for org_id, role in memberships),
    )


def test_anonymous_is_never_authorized() -> None:
    assert access_gate.authorize(None, ORG_A) is False
    assert access_gate.authorize(None, ORG_A, MembershipRole.MEMBER) is False


def test_no_required_role_means_any_membership() -> None:
    identity = _identity((ORG_A, MembershipRole.MEMBER))

    assert access_gate.authorize(identity, ORG_A) is True
    assert access_gate.authorize(identity, ORG_B) is False


@pytest.mark.parametrize(
    "held,required,expected",
    [
        (MembershipRole.ADMIN, MembershipRole.ADMIN, True),
        (MembershipRole.ADMIN, MembershipRole.MEMBER, True),
        (MembershipRole.MEMBER, MembershipRole.MEMBER, True),
        (MembershipRole.MEMBER, MembershipRole.ADMIN, False),
    ],
)
def test_role_requirements(held: MembershipRole, required: MembershipRole, expected: bool) -> None:
    identity = _identity((ORG_A, held))

    assert access_gate.authorize(identity, ORG_A, required) is expected


def test_membership_in_one_organization_does_not_leak_to_another() -> None:
    identity = _identity((ORG_A, MembershipRole.ADMIN), (ORG_B, MembershipRole.MEMBER))

    assert access_gate.authorize(identity, ORG_B, MembershipRole.ADMIN) is False
    assert access_gate.authorize(identity, uuid.uuid4()) is False


def test_require_raises_and_returns_identity() -> None:
    identity = _identity((ORG_A, MembershipRole.MEMBER))

    assert access_gate.require(identity, ORG_A) is identity
    with pytest.raises(AuthorizationError):
        access_gate.require(identity, ORG_B)
    with pytest.raises(AuthorizationError):
        access_gate.require(None, ORG_A)
