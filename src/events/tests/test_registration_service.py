"""Tests for the registration engine.

Covers creation, check-in (including racing scanners), cancellation and organizer listings.
"""

import threading
import typing as t
import uuid
from datetime import datetime, timedelta

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import OperationalError, connection
from django.utils import timezone
from freezegun import freeze_time
from pytest import MonkeyPatch

from accounts.identity import Identity, resolve_identity
from common.signing import generate_cancellation_token
from events.exceptions import (
    AuthorizationError,
    ConflictError,
    EventFullError,
    InfrastructureError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from events.models import Event, Organization, Registration
from events.service import access_gate, qr, registration_service

pytestmark = pytest.mark.django_db


def _register(event: Event, name: str = "Ana Lima", email: str = "ana@x.com", **kwargs: t.Any) -> Registration:
    return registration_service.create_registration(event.pk, guest_name=name, guest_email=email, **kwargs).unwrap()


def _snapshot(registration: Registration) -> tuple[t.Any, ...]:
    registration.refresh_from_db()
    return registration.status, registration.attended_at, registration.updated_at, registration.checked_in_by_id


# --- create ---


class TestCreateRegistration:
    def test_creates_confirmed_registration(self, event: Event) -> None:
        result = registration_service.create_registration(
            event.pk,
            guest_name="  Ana Lima ",
            guest_email="ana@x.com",
            guest_phone="+43 660 1234567",
            custom_data={"diet": "vegan"},
        )

        assert result.ok
        registration = result.unwrap()
        assert registration.status == Registration.Status.CONFIRMED
        assert registration.attended_at is None
        assert registration.guest_name == "Ana Lima"
        assert registration.organization_id == event.organization_id
        assert registration.custom_data == {"diet": "vegan"}
        assert registration.qr_hash

    def test_reports_every_invalid_field(self, event: Event) -> None:
        result = registration_service.create_registration(
            event.pk,
            guest_name=" A ",
            guest_email="not-an-email",
            guest_phone="1" * 33,
            custom_data=["not", "an", "object"],  # type: ignore[arg-type]
        )

        assert not result.ok
        assert isinstance(result.error, ValidationError)
        assert set(result.error.errors) == {"guest_name", "guest_email", "guest_phone", "custom_data"}
        assert not Registration.objects.exists()

    def test_overlong_guest_name(self, event: Event) -> None:
        result = registration_service.create_registration(event.pk, guest_name="A" * 300, guest_email="ana@x.com")

        assert isinstance(result.error, ValidationError)
        assert set(result.error.errors) == {"guest_name"}
        assert not Registration.objects.exists()

    def test_overlong_guest_email(self, event: Event) -> None:
        email = "a" * 64 + "@" + ("b" * 60 + ".") * 4 + "com"
        assert len(email) > registration_service.GUEST_EMAIL_MAX_LENGTH

        result = registration_service.create_registration(event.pk, guest_name="Ana", guest_email=email)

        assert isinstance(result.error, ValidationError)
        assert set(result.error.errors) == {"guest_email"}
        assert not Registration.objects.exists()

    def test_model_validation_failure_is_a_validation_result(self, event: Event, monkeypatch: MonkeyPatch) -> None:
        def reject(self: Registration, *args: t.Any, **kwargs: t.Any) -> None:
            raise DjangoValidationError({"guest_name": ["Ensure this value has at most 255 characters."]})

        monkeypatch.setattr(Registration, "full_clean", reject)

        result = registration_service.create_registration(event.pk, guest_name="Ana", guest_email="ana@x.com")

        assert isinstance(result.error, ValidationError)
        assert result.error.errors == {"guest_name": ["Ensure this value has at most 255 characters."]}
        assert not Registration.objects.exists()

    def test_unknown_event(self) -> None:
        result = registration_service.create_registration(uuid.uuid4(), guest_name="Ana", guest_email="ana@x.com")

        assert isinstance(result.error, NotFoundError)

    def test_cancelled_event(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(status=Event.EventStatus.CANCELLED)

        result = registration_service.create_registration(event.pk, guest_name="Ana", guest_email="ana@x.com")

        assert isinstance(result.error, NotFoundError)

    def test_event_with_broken_details(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(details={"type": "WORKSHOP"})

        result = registration_service.create_registration(event.pk, guest_name="Ana", guest_email="ana@x.com")

        assert isinstance(result.error, NotFoundError)
        assert not Registration.objects.exists()

    def test_capacity_is_enforced(self, event: Event) -> None:
        Event.objects.filter(pk=event.pk).update(details={**event.details, "max_participants": 2})
        first = _register(event, email="one@x.com")
        _register(event, email="two@x.com")

        result = registration_service.create_registration(event.pk, guest_name="Three", guest_email="three@x.com")
        assert isinstance(result.error, EventFullError)

        registration_service.cancel_registration(first.pk, None, cancellation_token=generate_cancellation_token(first.pk))
        assert registration_service.create_registration(event.pk, guest_name="Three", guest_email="three@x.com").ok

    def test_concert_has_no_capacity_limit(self, concert: Event) -> None:
        for i in range(5):
            _register(concert, email=f"guest{i}@x.com")

        assert Registration.objects.filter(event=concert).count() == 5

    def test_qr_hash_collision_is_retried(self, event: Event, monkeypatch: MonkeyPatch) -> None:
        existing = _register(event)
        hashes = iter([existing.qr_hash, existing.qr_hash, "fresh-hash"])
        monkeypatch.setattr(qr, "generate_qr_hash", lambda: next(hashes))

        registration = _register(event, email="other@x.com")

        assert registration.qr_hash == "fresh-hash"

    def test_qr_hash_collision_exhaustion_is_a_conflict(
        self, event: Event, monkeypatch: MonkeyPatch, settings: t.Any
    ) -> None:
        existing = _register(event)
        calls: list[int] = []

        def colliding() -> str:
            calls.append(1)
            return existing.qr_hash

        monkeypatch.setattr(qr, "generate_qr_hash", colliding)

        result = registration_service.create_registration(event.pk, guest_name="Bob", guest_email="bob@x.com")

        assert isinstance(result.error, ConflictError)
        assert len(calls) == settings.QR_HASH_MAX_ATTEMPTS
        assert Registration.objects.count() == 1

    def test_qr_hashes_are_unique(self, concert: Event) -> None:
        registrations = [_register(concert, email=f"guest{i}@x.com") for i in range(20)]

        assert len({r.qr_hash for r in registrations}) == 20

    def test_round_trip_by_qr_hash(self, registration: Registration, event: Event) -> None:
        found = registration_service.get_by_qr_hash(registration.qr_hash)

        assert found is not None
        assert found.pk == registration.pk
        assert found.event_id == event.pk
        assert found.organization_id == event.organization_id
        assert registration_service.get_by_qr_hash("unknown") is None


# --- check-in ---


class TestCheckIn:
    def test_scenario_a_check_in_then_rescan(self, event: Event, member_identity: Identity) -> None:
        registration = _register(event, name="Ana", email="ana@x.com")
        assert registration.status == Registration.Status.CONFIRMED

        checked_in = registration_service.check_in(registration.qr_hash, member_identity).unwrap()
        assert checked_in.status == Registration.Status.CHECKED_IN
        assert checked_in.attended_at is not None
        assert checked_in.checked_in_by_id == member_identity.id
        first_attended_at = checked_in.attended_at

        again = registration_service.check_in(registration.qr_hash, member_identity)
        assert isinstance(again.error, InvalidStateError)
        assert again.error.message == "already checked-in"
        assert again.error.status == Registration.Status.CHECKED_IN
        assert again.error.attended_at == first_attended_at
        registration.refresh_from_db()
        assert registration.attended_at == first_attended_at

    def test_scenario_b_unknown_hash(self, registration: Registration, member_identity: Identity) -> None:
        before = _snapshot(registration)

        result = registration_service.check_in("definitely-not-a-real-hash", member_identity)

        assert isinstance(result.error, NotFoundError)
        assert Registration.objects.count() == 1
        assert _snapshot(registration) == before

    def test_scenario_c_outsider_is_rejected(self, registration: Registration, outsider_identity: Identity) -> None:
        before = _snapshot(registration)

        result = registration_service.check_in(registration.qr_hash, outsider_identity)

        assert isinstance(result.error, AuthorizationError)
        assert _snapshot(registration) == before

    def test_scenario_d_cancelled_registration(
        self, registration: Registration, member_identity: Identity, owner_identity: Identity
    ) -> None:
        registration_service.cancel_registration(registration.pk, owner_identity).unwrap()

        result = registration_service.check_in(registration.qr_hash, member_identity)

        assert isinstance(result.error, InvalidStateError)
        assert result.error.message == "cancelled"

    def test_anonymous_caller_touches_nothing(
        self, registration: Registration, django_assert_num_queries: t.Any
    ) -> None:
        with django_assert_num_queries(0):
            result = registration_service.check_in(registration.qr_hash, None, event_id=registration.event_id)

        assert isinstance(result.error, AuthorizationError)

    def test_identity_without_memberships_is_rejected_before_lookup(
        self, registration: Registration, django_assert_num_queries: t.Any
    ) -> None:
        nobody = Identity(id=uuid.uuid4(), email="nobody@example.com")

        with django_assert_num_queries(0):
            result = registration_service.check_in(registration.qr_hash, nobody)

        assert isinstance(result.error, AuthorizationError)

    def test_scanner_context_authorizes_before_reading_registrations(
        self, registration: Registration, outsider_identity: Identity, django_assert_num_queries: t.Any
    ) -> None:
        # only the event's organization is read
        with django_assert_num_queries(1):
            result = registration_service.check_in(
                registration.qr_hash, outsider_identity, event_id=registration.event_id
            )

        assert isinstance(result.error, AuthorizationError)

    def test_scanner_context_for_another_event(
        self, registration: Registration, concert: Event, member_identity: Identity
    ) -> None:
        result = registration_service.check_in(registration.qr_hash, member_identity, event_id=concert.pk)

        assert isinstance(result.error, NotFoundError)
        registration.refresh_from_db()
        assert registration.status == Registration.Status.CONFIRMED

    def test_advisory_registration_id_must_match(
        self, registration: Registration, event: Event, member_identity: Identity
    ) -> None:
        other = _register(event, email="other@x.com")

        result = registration_service.check_in(registration.qr_hash, member_identity, registration_id=other.pk)

        assert isinstance(result.error, NotFoundError)

    def test_blank_hash(self, member_identity: Identity) -> None:
        result = registration_service.check_in("   ", member_identity)

        assert isinstance(result.error, ValidationError)

    def test_check_in_payload(self, registration: Registration, member_identity: Identity) -> None:
        raw = qr.encode_payload(registration)

        checked_in = registration_service.check_in_payload(raw, member_identity, event_id=registration.event_id)

        assert checked_in.unwrap().status == Registration.Status.CHECKED_IN

    def test_check_in_payload_without_scanner_context(
        self, registration: Registration, member_identity: Identity
    ) -> None:
        result = registration_service.check_in_payload(qr.encode_payload(registration), member_identity)

        assert result.ok

    def test_check_in_payload_with_tampered_ids(
        self, registration: Registration, concert: Event, member_identity: Identity
    ) -> None:
        forged = qr.QRPayload(registration_id=registration.pk, event_id=concert.pk, qr_hash=registration.qr_hash)

        result = registration_service.check_in_payload(qr.encode_payload(forged), member_identity)

        assert isinstance(result.error, NotFoundError)
        registration.refresh_from_db()
        assert registration.status == Registration.Status.CONFIRMED

    def test_check_in_payload_for_another_scanner_event(
        self, registration: Registration, concert: Event, member_identity: Identity
    ) -> None:
        result = registration_service.check_in_payload(
            qr.encode_payload(registration), member_identity, event_id=concert.pk
        )

        assert isinstance(result.error, NotFoundError)

    def test_unreadable_payload(self, member_identity: Identity) -> None:
        result = registration_service.check_in_payload("%%%", member_identity)

        assert isinstance(result.error, ValidationError)

    def test_losing_a_race_reports_the_winner_state(
        self,
        registration: Registration,
        member_identity: Identity,
        owner_identity: Identity,
        monkeypatch: MonkeyPatch,
    ) -> None:
        """A second scanner that read the registration before the first one wrote must not win too."""
        real_require = access_gate.require
        raced: list[bool] = []
        winners: list[t.Any] = []

        def require_then_let_other_scanner_win(*args: t.Any, **kwargs: t.Any) -> Identity:
            identity = real_require(*args, **kwargs)
            if not raced:
                raced.append(True)
                winners.append(registration_service.check_in(registration.qr_hash, member_identity))
            return identity

        monkeypatch.setattr(access_gate, "require", require_then_let_other_scanner_win)

        loser = registration_service.check_in(registration.qr_hash, owner_identity)

        assert winners[0].ok
        assert isinstance(loser.error, InvalidStateError)
        assert loser.error.status == Registration.Status.CHECKED_IN
        assert loser.error.attended_at == winners[0].value.attended_at
        registration.refresh_from_db()
        assert registration.checked_in_by_id == member_identity.id

    def test_storage_failure_is_not_a_domain_result(
        self, registration: Registration, member_identity: Identity, monkeypatch: MonkeyPatch
    ) -> None:
        def broken(*args: t.Any, **kwargs: t.Any) -> Registration:
            raise OperationalError("connection lost")

        monkeypatch.setattr(registration_service, "_check_in", broken)

        with pytest.raises(InfrastructureError):
            registration_service.check_in(registration.qr_hash, member_identity)


@pytest.mark.postgres
@pytest.mark.django_db(transaction=True)
def test_concurrent_check_ins_only_one_wins(event: Event, member_identity: Identity) -> None:
    if connection.vendor == "sqlite":
        pytest.skip("SQLite serializes writers; run against PostgreSQL for a real race.")
    registration = _register(event)
    scanners = 8
    barrier = threading.Barrier(scanners)
    results: list[t.Any] = []
    lock = threading.Lock()

    def scan() -> None:
        try:
            barrier.wait()
            result = registration_service.check_in(registration.qr_hash, member_identity)
            with lock:
                results.append(result)
        finally:
            connection.close()

    threads = [threading.Thread(target=scan) for _ in range(scanners)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r.ok) == 1
    assert sum(1 for r in results if isinstance(r.error, InvalidStateError)) == scanners - 1
    registration.refresh_from_db()
    assert registration.status == Registration.Status.CHECKED_IN


# --- cancel ---


class TestCancelRegistration:
    def test_member_cancels(self, registration: Registration, member_identity: Identity) -> None:
        cancelled = registration_service.cancel_registration(registration.pk, member_identity).unwrap()

        assert cancelled.status == Registration.Status.CANCELLED
        assert cancelled.cancelled_at is not None

    def test_guest_cancels_with_token(self, registration: Registration) -> None:
        token = generate_cancellation_token(registration.pk)

        result = registration_service.cancel_registration(registration.pk, None, cancellation_token=token)

        assert result.unwrap().status == Registration.Status.CANCELLED

    def test_guest_cancels_by_matching_email(
        self, registration: Registration, rollcall_user_factory: t.Any
    ) -> None:
        guest = rollcall_user_factory(email="GRACE@example.com", email_verified=True)

        result = registration_service.cancel_registration(registration.pk, resolve_identity(guest))

        assert result.ok

    def test_unverified_email_cannot_cancel(self, registration: Registration, rollcall_user_factory: t.Any) -> None:
        guest = rollcall_user_factory(email="grace@example.com")

        result = registration_service.cancel_registration(registration.pk, resolve_identity(guest))

        assert isinstance(result.error, AuthorizationError)
        registration.refresh_from_db()
        assert registration.status == Registration.Status.CONFIRMED

    def test_token_for_another_registration(self, registration: Registration, event: Event) -> None:
        other = _register(event, email="other@x.com")
        token = generate_cancellation_token(other.pk)

        result = registration_service.cancel_registration(registration.pk, None, cancellation_token=token)

        assert isinstance(result.error, AuthorizationError)

    def test_expired_token(self, registration: Registration) -> None:
        token = generate_cancellation_token(registration.pk, expires_in=60)

        with freeze_time(timezone.now() + timedelta(minutes=5)):
            result = registration_service.cancel_registration(registration.pk, None, cancellation_token=token)

        assert isinstance(result.error, AuthorizationError)

    def test_outsider_cannot_cancel(self, registration: Registration, outsider_identity: Identity) -> None:
        result = registration_service.cancel_registration(registration.pk, outsider_identity)

        assert isinstance(result.error, AuthorizationError)
        registration.refresh_from_db()
        assert registration.status == Registration.Status.CONFIRMED

    def test_unknown_registration(self, member_identity: Identity) -> None:
        result = registration_service.cancel_registration(uuid.uuid4(), member_identity)

        assert isinstance(result.error, NotFoundError)

    def test_cancel_twice(self, registration: Registration, member_identity: Identity) -> None:
        registration_service.cancel_registration(registration.pk, member_identity).unwrap()

        result = registration_service.cancel_registration(registration.pk, member_identity)

        assert isinstance(result.error, InvalidStateError)
        assert result.error.message == "cancelled"

    def test_cancel_after_check_in_keeps_attendance(
        self, registration: Registration, member_identity: Identity
    ) -> None:
        checked_in = registration_service.check_in(registration.qr_hash, member_identity).unwrap()

        cancelled = registration_service.cancel_registration(registration.pk, member_identity).unwrap()

        assert cancelled.status == Registration.Status.CANCELLED
        assert cancelled.attended_at == checked_in.attended_at
        assert cancelled.qr_hash == registration.qr_hash


# --- listings ---


class TestListByEvent:
    def _register_at(self, event: Event, when: datetime, email: str) -> Registration:
        with freeze_time(when):
            return _register(event, email=email)

    def test_ordered_by_submission(self, event: Event, member_identity: Identity) -> None:
        now = timezone.now()
        late = self._register_at(event, now + timedelta(minutes=2), "late@x.com")
        early = self._register_at(event, now, "early@x.com")
        middle = self._register_at(event, now + timedelta(minutes=1), "middle@x.com")

        registrations = registration_service.list_by_event(event.pk, member_identity).unwrap()

        assert [r.pk for r in registrations] == [early.pk, middle.pk, late.pk]
        # lazy and re-iterable
        assert [r.pk for r in registrations] == [early.pk, middle.pk, late.pk]

    def test_status_filter(self, event: Event, member_identity: Identity) -> None:
        kept = _register(event, email="kept@x.com")
        dropped = _register(event, email="dropped@x.com")
        registration_service.cancel_registration(dropped.pk, member_identity).unwrap()

        confirmed = registration_service.list_by_event(event.pk, member_identity, status="confirmed").unwrap()
        cancelled = registration_service.list_by_event(event.pk, member_identity, status="cancelled").unwrap()

        assert [r.pk for r in confirmed] == [kept.pk]
        assert [r.pk for r in cancelled] == [dropped.pk]

    def test_unknown_status(self, event: Event, member_identity: Identity) -> None:
        result = registration_service.list_by_event(event.pk, member_identity, status="maybe")

        assert isinstance(result.error, ValidationError)

    def test_only_the_event_registrations(
        self, event: Event, concert: Event, registration: Registration, member_identity: Identity
    ) -> None:
        _register(concert, email="concert@x.com")

        registrations = registration_service.list_by_event(event.pk, member_identity).unwrap()

        assert [r.pk for r in registrations] == [registration.pk]

    def test_outsider(
        self, event: Event, registration: Registration, outsider_identity: Identity, django_assert_num_queries: t.Any
    ) -> None:
        with django_assert_num_queries(1):
            result = registration_service.list_by_event(event.pk, outsider_identity)

        assert isinstance(result.error, AuthorizationError)

    def test_unknown_event(self, member_identity: Identity) -> None:
        result = registration_service.list_by_event(uuid.uuid4(), member_identity)

        assert isinstance(result.error, NotFoundError)

    def test_attendance_summary(
        self, event: Event, organization: Organization, member_identity: Identity
    ) -> None:
        checked = _register(event, email="a@x.com")
        _register(event, email="b@x.com")
        cancelled = _register(event, email="c@x.com")
        registration_service.check_in(checked.qr_hash, member_identity).unwrap()
        registration_service.cancel_registration(cancelled.pk, member_identity).unwrap()

        summary = registration_service.attendance_summary(event.pk, member_identity).unwrap()

        assert (summary.confirmed, summary.checked_in, summary.cancelled, summary.total) == (1, 1, 1, 3)
