"""The registration engine: guest sign-up, check-in at the door, cancellation and listings.

Every operation returns a Result. Domain failures are carried as typed RegistrationErrors;
storage failures are raised as InfrastructureError by the returns_result decorator.

Status changes are conditional updates filtered on the statuses a transition may start from,
so two scanners racing on the same code cannot both succeed.
"""

import typing as t
from uuid import UUID

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import Count, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from accounts.identity import Identity, MembershipRole
from common.signing import verify_cancellation_token
from events.exceptions import (
    AuthorizationError,
    ConflictError,
    EventFullError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from events.models import Event, Registration
from events.schema import AttendanceSummary
from events.service import access_gate, qr
from events.service.results import returns_result

logger = structlog.get_logger(__name__)

GUEST_NAME_MIN_LENGTH = 2
GUEST_NAME_MAX_LENGTH = 255
GUEST_EMAIL_MAX_LENGTH = 254
GUEST_PHONE_MAX_LENGTH = 32


def _validate_guest(
    guest_name: str | None, guest_email: str | None, guest_phone: str | None, custom_data: t.Any
) -> tuple[str, str, str | None]:
    errors: dict[str, list[str]] = {}
    name = (guest_name or "").strip()
    if len(name) < GUEST_NAME_MIN_LENGTH:
        errors["guest_name"] = [str(_("Name must be at least 2 characters long."))]
    elif len(name) > GUEST_NAME_MAX_LENGTH:
        errors["guest_name"] = [str(_("Name must be at most 255 characters long."))]
    email = (guest_email or "").strip()
    try:
        validate_email(email)
    except DjangoValidationError:
        errors["guest_email"] = [str(_("Enter a valid email address."))]
    else:
        if len(email) > GUEST_EMAIL_MAX_LENGTH:
            errors["guest_email"] = [str(_("Email must be at most 254 characters long."))]
    phone = (guest_phone or "").strip() or None
    if phone is not None and len(phone) > GUEST_PHONE_MAX_LENGTH:
        errors["guest_phone"] = [str(_("Phone number must be at most 32 characters long."))]
    if custom_data is not None and not isinstance(custom_data, dict):
        errors["custom_data"] = [str(_("Custom data must be an object."))]
    if errors:
        raise ValidationError(errors)
    return name, email, phone


def _load_open_event(event_id: UUID) -> Event:
    """Lock an active event with valid details, or raise NotFoundError."""
    event = Event.objects.select_for_update().filter(pk=event_id, status=Event.EventStatus.ACTIVE).first()
    if event is None:
        raise NotFoundError()
    try:
        event.get_details()
    except DjangoValidationError:
        logger.warning("event_details_invalid", event_id=str(event_id))
        raise NotFoundError()
    return event


def _allocate_qr_hash(build: t.Callable[[str], Registration]) -> Registration:
    """Create a registration under a fresh qr_hash, regenerating on collision."""
    for attempt in range(1, settings.QR_HASH_MAX_ATTEMPTS + 1):
        qr_hash = qr.generate_qr_hash()
        if Registration.objects.filter(qr_hash=qr_hash).exists():
            logger.warning("qr_hash_collision_retry", attempt=attempt)
            continue
        try:
            with transaction.atomic():
                return build(qr_hash)
        except IntegrityError:
            logger.warning("qr_hash_collision_retry", attempt=attempt)
        except DjangoValidationError as e:
            if "qr_hash" not in getattr(e, "error_dict", {}):
                errors = e.message_dict if hasattr(e, "error_dict") else {"__all__": e.messages}
                raise ValidationError(errors) from e
            logger.warning("qr_hash_collision_retry", attempt=attempt)
    logger.error("qr_hash_collision", attempts=settings.QR_HASH_MAX_ATTEMPTS)
    raise ConflictError()


@returns_result
def create_registration(
    event_id: UUID,
    guest_name: str,
    guest_email: str,
    guest_phone: str | None = None,
    custom_data: dict[str, t.Any] | None = None,
) -> Registration:
    """Register a guest for an event.

    Raises:
        ValidationError: malformed guest data.
        NotFoundError: the event does not exist, is cancelled or has broken details.
        EventFullError: the event's participant limit is reached.
        ConflictError: no unique qr_hash could be allocated.
    """
    name, email, phone = _validate_guest(guest_name, guest_email, guest_phone, custom_data)

    with transaction.atomic():
        event = _load_open_event(event_id)
        limit = event.capacity()
        if limit is not None and Registration.objects.filter(event=event).not_cancelled().count() >= limit:
            raise EventFullError()

        def build(qr_hash: str) -> Registration:
            registration = Registration(
                event=event,
                organization_id=event.organization_id,
                guest_name=name,
                guest_email=email,
                guest_phone=phone,
                custom_data=custom_data,
                status=Registration.Status.CONFIRMED,
            )
            registration.qr_hash = qr_hash
            registration.save()
            return registration

        registration = _allocate_qr_hash(build)

    logger.info(
        "registration_created",
        registration_id=str(registration.pk),
        event_id=str(event.pk),
        organization_id=str(event.organization_id),
    )
    return registration


def _check_in(
    qr_hash: str,
    identity: Identity | None,
    *,
    event_id: UUID | None = None,
    registration_id: UUID | None = None,
) -> Registration:
    qr_hash = (qr_hash or "").strip()
    if not qr_hash:
        raise ValidationError({"qr_hash": [str(_("This field is required."))]})
    if identity is None:
        raise AuthorizationError()

    if event_id is not None:
        org_id = Event.objects.filter(pk=event_id).values_list("organization_id", flat=True).first()
        if org_id is None:
            raise NotFoundError()
        access_gate.require(identity, org_id, MembershipRole.MEMBER)
    elif not identity.memberships:
        raise AuthorizationError()

    registration = Registration.objects.filter(qr_hash=qr_hash).first()
    if registration is None:
        raise NotFoundError()
    if (event_id is not None and registration.event_id != event_id) or (
        registration_id is not None and registration.pk != registration_id
    ):
        logger.warning("qr_payload_mismatch", registration_id=str(registration.pk))
        raise NotFoundError()
    access_gate.require(identity, registration.organization_id, MembershipRole.MEMBER)

    if registration.status not in Registration.sources_for(Registration.Status.CHECKED_IN):
        raise InvalidStateError(registration.status, registration.attended_at)

    now = timezone.now()
    updated = Registration.objects.filter(
        pk=registration.pk, status__in=Registration.sources_for(Registration.Status.CHECKED_IN)
    ).update(
        status=Registration.Status.CHECKED_IN,
        attended_at=now,
        updated_at=now,
        checked_in_by_id=identity.id,
    )
    registration.refresh_from_db()
    if not updated:
        raise InvalidStateError(registration.status, registration.attended_at)

    logger.info(
        "registration_checked_in",
        registration_id=str(registration.pk),
        event_id=str(registration.event_id),
        checked_in_by=str(identity.id),
    )
    return registration


@returns_result
def check_in(
    qr_hash: str,
    identity: Identity | None,
    *,
    event_id: UUID | None = None,
    registration_id: UUID | None = None,
) -> Registration:
    """Check a guest in by the hash on their QR code.

    Args:
        qr_hash: The scanned hash. The only identifier that is trusted.
        identity: The scanning organizer.
        event_id: The event the scanner is set up for. Authorization happens against it
            before any registration is read.
        registration_id: Advisory id from the QR payload, cross-checked against the record found.

    Raises:
        AuthorizationError: anonymous caller or no sufficient membership.
        NotFoundError: unknown hash or mismatching advisory ids.
        InvalidStateError: the registration is not confirmed (already checked in or cancelled).
    """
    return _check_in(qr_hash, identity, event_id=event_id, registration_id=registration_id)


@returns_result
def check_in_payload(raw_payload: str, identity: Identity | None, event_id: UUID | None = None) -> Registration:
    """Decode a scanned QR payload and check the registration in."""
    payload = qr.decode_payload(raw_payload)
    if event_id is not None and payload.event_id != event_id:
        if identity is None:
            raise AuthorizationError()
        raise NotFoundError()
    return _check_in(
        payload.qr_hash,
        identity,
        event_id=event_id or payload.event_id,
        registration_id=payload.registration_id,
    )


def _may_cancel(registration: Registration, identity: Identity | None, cancellation_token: str | None) -> bool:
    if cancellation_token and verify_cancellation_token(registration.pk, cancellation_token):
        return True
    if identity is None:
        return False
    if identity.email_verified and identity.email and identity.email.lower() == registration.guest_email.lower():
        return True
    return access_gate.authorize(identity, registration.organization_id, MembershipRole.MEMBER)


@returns_result
def cancel_registration(
    registration_id: UUID, identity: Identity | None, *, cancellation_token: str | None = None
) -> Registration:
    """Cancel a registration.

    The guest (by verified email or signed token) and members of the organization may cancel.
    qr_hash and attended_at are left untouched.

    Raises:
        NotFoundError: unknown registration.
        AuthorizationError: the caller may not cancel this registration.
        InvalidStateError: the registration is already cancelled.
    """
    registration = Registration.objects.filter(pk=registration_id).first()
    if registration is None:
        raise NotFoundError()
    if not _may_cancel(registration, identity, cancellation_token):
        logger.info("registration_cancel_denied", registration_id=str(registration_id))
        raise AuthorizationError()

    now = timezone.now()
    updated = Registration.objects.filter(
        pk=registration.pk, status__in=Registration.sources_for(Registration.Status.CANCELLED)
    ).update(status=Registration.Status.CANCELLED, cancelled_at=now, updated_at=now)
    registration.refresh_from_db()
    if not updated:
        raise InvalidStateError(registration.status, registration.attended_at)

    logger.info(
        "registration_cancelled",
        registration_id=str(registration.pk),
        event_id=str(registration.event_id),
        via_link=bool(cancellation_token) and identity is None,
    )
    return registration


def _require_event_member(event_id: UUID, identity: Identity | None) -> Event:
    if identity is None:
        raise AuthorizationError()
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFoundError()
    access_gate.require(identity, event.organization_id, MembershipRole.MEMBER)
    return event


@returns_result
def list_by_event(
    event_id: UUID, identity: Identity | None, status: str | None = None
) -> QuerySet[Registration]:
    """Registrations of an event in submission order, optionally filtered by status.

    The returned queryset is lazy and can be iterated more than once.
    """
    if status is not None and status not in Registration.Status.values:
        raise ValidationError({"status": [str(_("Unknown registration status: {status}")).format(status=status)]})
    event = _require_event_member(event_id, identity)
    registrations = Registration.objects.for_event(event.pk)
    if status is not None:
        registrations = registrations.filter(status=status)
    return registrations


@returns_result
def attendance_summary(event_id: UUID, identity: Identity | None) -> AttendanceSummary:
    """Count registrations per status for an event."""
    event = _require_event_member(event_id, identity)
    counts = dict(
        Registration.objects.filter(event=event).values_list("status").annotate(n=Count("id")).order_by()
    )
    return AttendanceSummary(
        confirmed=counts.get(Registration.Status.CONFIRMED, 0),
        checked_in=counts.get(Registration.Status.CHECKED_IN, 0),
        cancelled=counts.get(Registration.Status.CANCELLED, 0),
        total=sum(counts.values()),
    )


def get_by_qr_hash(qr_hash: str) -> Registration | None:
    """Look a registration up by its QR hash."""
    return Registration.objects.filter(qr_hash=qr_hash).first()
