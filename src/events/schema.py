import typing as t
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, Field, HttpUrl, model_validator

from accounts.identity import MembershipRole
from common.schema import OneToOneFiftyString, StrippedString
from common.signing import generate_cancellation_token
from events.models import Event, EventDetails, Organization, OrganizationMember, Registration
from events.service import qr

# ---- Organizations ----


class OrganizationCreateSchema(Schema):
    """Schema for creating a new organization."""

    name: OneToOneFiftyString
    slug: StrippedString | None = None
    description: StrippedString | None = None
    logo_url: HttpUrl | None = None


class OrganizationEditSchema(Schema):
    """Schema for editing an existing organization.

    The slug is accepted only to reject attempts to change it.
    """

    name: OneToOneFiftyString | None = None
    slug: StrippedString | None = None
    description: StrippedString | None = None
    logo_url: HttpUrl | None = None

    def to_update_kwargs(self) -> dict[str, t.Any]:
        """Fields the caller actually sent, with URLs as plain strings."""
        data = self.model_dump(exclude_unset=True)
        if data.get("logo_url") is not None:
            data["logo_url"] = str(data["logo_url"])
        return data


class OrganizationRetrieveSchema(ModelSchema):
    owner_id: UUID

    class Meta:
        model = Organization
        fields = ["id", "name", "slug", "description", "logo_url", "created_at"]


class MemberAddSchema(Schema):
    user_id: UUID
    role: MembershipRole = MembershipRole.MEMBER


class MemberRoleSchema(Schema):
    role: MembershipRole


class OrganizationMemberSchema(ModelSchema):
    user_id: UUID
    organization_id: UUID
    role: MembershipRole

    class Meta:
        model = OrganizationMember
        fields = ["created_at"]


# ---- Events ----


class EventCreateSchema(Schema):
    """Schema for creating an event.

    The event type is taken from the discriminant of the details payload.
    """

    title: OneToOneFiftyString
    description: StrippedString
    price: Decimal | None = Field(None, ge=0)
    date: AwareDatetime
    location_name: OneToOneFiftyString
    location_address: StrippedString
    place_id: StrippedString = ""
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    banner_url: HttpUrl | None = None
    details: EventDetails

    def to_model_kwargs(self) -> dict[str, t.Any]:
        """Flatten the payload into Event field values."""
        data = self.model_dump(exclude={"details", "banner_url"})
        data["type"] = self.details.type
        data["details"] = self.details.model_dump(mode="json")
        data["banner_url"] = str(self.banner_url) if self.banner_url else None
        return data


class EventDetailSchema(Schema):
    id: UUID
    type: Event.EventType
    status: Event.EventStatus
    title: str
    description: str
    price: Decimal | None = None
    organization_id: UUID
    organization_name: str
    date: datetime
    location_name: str
    location_address: str
    place_id: str = ""
    latitude: float | None = None
    longitude: float | None = None
    banner_url: str | None = None
    details: dict[str, t.Any]
    summary: str
    capacity: int | None = None

    @staticmethod
    def resolve_summary(obj: Event) -> str:
        """Human readable, type specific one-liner."""
        return obj.summary()

    @staticmethod
    def resolve_capacity(obj: Event) -> int | None:
        """Participant limit, if the event type declares one."""
        return obj.capacity()


# ---- Registrations ----


class RegistrationCreateSchema(Schema):
    """Guest registration payload.

    Fields are loosely typed here; the registration engine reports per-field problems itself.
    """

    guest_name: str
    guest_email: str
    guest_phone: str | None = None
    custom_data: t.Any = None


class RegistrationSchema(ModelSchema):
    """A registration as seen by organizers. The QR hash is never listed."""

    event_id: UUID
    organization_id: UUID
    status: Registration.Status
    checked_in_by_id: UUID | None = None

    class Meta:
        model = Registration
        fields = [
            "id",
            "guest_name",
            "guest_email",
            "guest_phone",
            "custom_data",
            "attended_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]


class RegistrationCreatedSchema(RegistrationSchema):
    """Returned once, to the guest who registered."""

    qr_hash: str
    qr_payload: str
    cancellation_token: str

    @staticmethod
    def resolve_qr_payload(obj: Registration) -> str:
        """The string to render as the QR code."""
        return qr.encode_payload(obj)

    @staticmethod
    def resolve_cancellation_token(obj: Registration) -> str:
        """A signed token letting the guest cancel without an account."""
        return generate_cancellation_token(obj.pk)


class RegistrationCancelSchema(Schema):
    cancellation_token: str | None = None


class CheckInSchema(Schema):
    """A scan: either the raw QR payload string or the bare hash."""

    qr_payload: StrippedString | None = None
    qr_hash: StrippedString | None = None

    @model_validator(mode="after")
    def exactly_one_code(self) -> t.Self:
        """Exactly one of qr_payload and qr_hash must be sent."""
        if bool(self.qr_payload) == bool(self.qr_hash):
            raise ValueError("Send either qr_payload or qr_hash.")
        return self


class RegistrationStatusFilter(Schema):
    status: str | None = None


class AttendanceSummary(Schema):
    """Counters for the organizer's check-in screen."""

    confirmed: int = 0
    checked_in: int = 0
    cancelled: int = 0
    total: int = 0


class InvalidStateResponse(Schema):
    detail: str
    status: Registration.Status
    attended_at: datetime | None = None
