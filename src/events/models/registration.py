import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinLengthValidator
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel


class RegistrationQuerySet(models.QuerySet["Registration"]):
    """Custom queryset for Registration model."""

    def for_event(self, event_id: t.Any) -> t.Self:
        """Registrations of one event in submission order."""
        return self.filter(event_id=event_id).order_by("created_at", "id")

    def not_cancelled(self) -> t.Self:
        """Registrations that still count towards attendance."""
        return self.exclude(status=Registration.Status.CANCELLED)

    def with_event(self) -> t.Self:
        """Select the related event."""
        return self.select_related("event")


class RegistrationManager(models.Manager["Registration"]):
    """Custom manager for Registration."""

    def get_queryset(self) -> RegistrationQuerySet:
        """Get base queryset."""
        return RegistrationQuerySet(self.model, using=self._db)

    def for_event(self, event_id: t.Any) -> RegistrationQuerySet:
        """Returns the registrations of an event ordered by creation."""
        return self.get_queryset().for_event(event_id)

    def not_cancelled(self) -> RegistrationQuerySet:
        """Returns registrations that are not cancelled."""
        return self.get_queryset().not_cancelled()


class Registration(TimeStampedModel):
    class Status(models.TextChoices):
        CONFIRMED = "confirmed", "Confirmed"
        CHECKED_IN = "checked-in", "Checked in"
        CANCELLED = "cancelled", "Cancelled"

    # target status -> statuses it may be reached from
    TRANSITIONS: t.ClassVar[dict[str, tuple[str, ...]]] = {
        Status.CHECKED_IN: (Status.CONFIRMED,),
        Status.CANCELLED: (Status.CONFIRMED, Status.CHECKED_IN),
    }

    event = models.ForeignKey("events.Event", on_delete=models.PROTECT, related_name="registrations")
    organization = models.ForeignKey("events.Organization", on_delete=models.PROTECT, related_name="registrations")
    guest_name = models.CharField(max_length=255, validators=[MinLengthValidator(2)])
    guest_email = models.EmailField(db_index=True)
    guest_phone = models.CharField(max_length=32, blank=True, null=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.CONFIRMED, db_index=True)
    qr_hash = models.CharField(max_length=128, unique=True, editable=False)
    custom_data = models.JSONField(null=True, blank=True)
    attended_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checked_in_registrations",
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = RegistrationManager()

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["event", "status"], name="idx_registration_event_status"),
            models.Index(fields=["organization", "created_at"], name="idx_registration_org_created"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status="confirmed", attended_at__isnull=True)
                    | Q(status="checked-in", attended_at__isnull=False)
                    | Q(status="cancelled")
                ),
                name="registration_attended_at_matches_status",
            ),
        ]

    def __str__(self) -> str:
        return f"Registration: {self.guest_email} -> {self.event_id} ({self.status})"

    @classmethod
    def sources_for(cls, target: "Registration.Status") -> tuple[str, ...]:
        """Statuses a registration may move to target from."""
        return cls.TRANSITIONS.get(target, ())

    def clean(self) -> None:
        """The organization is denormalized from the event and must agree with it."""
        super().clean()
        if self.event_id and self.organization_id and self.event.organization_id != self.organization_id:
            raise DjangoValidationError({"organization": "The organization must match the event's organization."})
        if self.custom_data is not None and not isinstance(self.custom_data, dict):
            raise DjangoValidationError({"custom_data": "Custom data must be an object."})
