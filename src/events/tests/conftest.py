import typing as t
from datetime import datetime

import pytest
from django.test.client import Client
from ninja_jwt.tokens import RefreshToken

from accounts.identity import Identity, MembershipRole, resolve_identity
from accounts.models import RollcallUser
from events.models import Event, Organization, OrganizationMember, Registration
from events.service import registration_service

WORKSHOP_DETAILS = {
    "type": "WORKSHOP",
    "mentor_name": "Ada Lovelace",
    "syllabus": ["Setup", "Loops", "Functions"],
}

CONCERT_DETAILS = {
    "type": "CONCERT",
    "lineup": ["The Strokes", "Phoenix"],
    "gate_open": "18:30",
}


def client_for(user: RollcallUser) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def organization_owner_user(django_user_model: t.Type[RollcallUser]) -> RollcallUser:
    return django_user_model.objects.create_user(
        username="organization_owner_user", email="owner@example.com", password="pass"
    )


@pytest.fixture
def member_user(django_user_model: t.Type[RollcallUser]) -> RollcallUser:
    return django_user_model.objects.create_user(username="member_user", email="member@example.com", password="pass")


@pytest.fixture
def nonmember_user(django_user_model: t.Type[RollcallUser]) -> RollcallUser:
    return django_user_model.objects.create_user(
        username="nonmember_user", email="nonmember@example.com", password="pass"
    )


@pytest.fixture
def organization(organization_owner_user: RollcallUser) -> Organization:
    org = Organization.objects.create(name="Org One", slug="org-one", owner=organization_owner_user)
    OrganizationMember.objects.create(organization=org, user=organization_owner_user, role=MembershipRole.ADMIN)
    return org


@pytest.fixture
def other_organization(nonmember_user: RollcallUser) -> Organization:
    org = Organization.objects.create(name="Org Two", slug="org-two", owner=nonmember_user)
    OrganizationMember.objects.create(organization=org, user=nonmember_user, role=MembershipRole.ADMIN)
    return org


@pytest.fixture
def member(organization: Organization, member_user: RollcallUser) -> OrganizationMember:
    return OrganizationMember.objects.create(organization=organization, user=member_user, role=MembershipRole.MEMBER)


@pytest.fixture
def event(organization: Organization, next_week: datetime) -> Event:
    return Event.objects.create(
        organization=organization,
        type=Event.EventType.WORKSHOP,
        title="Intro to Python",
        description="A hands-on workshop.",
        date=next_week,
        location_name="Community Hall",
        location_address="1 Main Street",
        details=WORKSHOP_DETAILS,
    )


@pytest.fixture
def concert(organization: Organization, next_week: datetime) -> Event:
    return Event.objects.create(
        organization=organization,
        type=Event.EventType.CONCERT,
        title="Summer Night Live",
        description="Open air concert.",
        date=next_week,
        location_name="City Park",
        location_address="Park Avenue",
        details=CONCERT_DETAILS,
    )


@pytest.fixture
def other_event(other_organization: Organization, next_week: datetime) -> Event:
    return Event.objects.create(
        organization=other_organization,
        type=Event.EventType.MEETUP,
        title="Other Org Meetup",
        description="Somebody else's event.",
        date=next_week,
        location_name="Cafe",
        location_address="2 Side Street",
        details={"type": "MEETUP", "agenda": "Networking"},
    )


@pytest.fixture
def registration(event: Event) -> Registration:
    return registration_service.create_registration(
        event.pk, guest_name="Grace Hopper", guest_email="grace@example.com"
    ).unwrap()


@pytest.fixture
def owner_identity(organization: Organization, organization_owner_user: RollcallUser) -> Identity:
    identity = resolve_identity(organization_owner_user)
    assert identity is not None
    return identity


@pytest.fixture
def member_identity(member: OrganizationMember, member_user: RollcallUser) -> Identity:
    identity = resolve_identity(member_user)
    assert identity is not None
    return identity


@pytest.fixture
def outsider_identity(other_organization: Organization, nonmember_user: RollcallUser) -> Identity:
    """Admin of another organization."""
    identity = resolve_identity(nonmember_user)
    assert identity is not None
    return identity


@pytest.fixture
def organization_owner_client(organization: Organization, organization_owner_user: RollcallUser) -> Client:
    return client_for(organization_owner_user)


@pytest.fixture
def member_client(member: OrganizationMember, member_user: RollcallUser) -> Client:
    return client_for(member_user)


@pytest.fixture
def nonmember_client(nonmember_user: RollcallUser) -> Client:
    return client_for(nonmember_user)
