import typing as t

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinLengthValidator, MinValueValidator
from django.db import models
from pydantic import BaseModel, ConfigDict, Discriminator, Field, StringConstraints, Tag, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from common.models import TimeStampedModel

from .mixins import LocationMixin

NonEmptyString = t.Annotated[str, StringConstraints(min_length=1, strip_whitespace=True)]


class _Details(BaseModel):
    model_config = ConfigDict(extra="forbid")


class WorkshopDetails(_Details):
    type: t.Literal["WORKSHOP"] = "WORKSHOP"
    mentor_name: NonEmptyString
    syllabus: list[NonEmptyString] = Field(min_length=1)
    max_participants: int | None = Field(default=None, gt=0)


class ConcertDetails(_Details):
    type: t.Literal["CONCERT"] = "CONCERT"
    lineup: list[NonEmptyString] = Field(min_length=1)
    gate_open: NonEmptyString


class Speaker(_Details):
    name: NonEmptyString
    title: str | None = None
    photo_url: str | None = None


class SeminarDetails(_Details):
    type: t.Literal["SEMINAR"] = "SEMINAR"
    speakers: list[Speaker] = Field(min_length=1)
    topics: list[str] = Field(default_factory=list)


class MeetupDetails(_Details):
    type: t.Literal["MEETUP"] = "MEETUP"
    agenda: str | None = None
    max_participants: int | None = Field(default=None, gt=0)


EventDetails = t.Annotated[
    t.Union[
        t.Annotated[WorkshopDetails, Tag("WORKSHOP")],
        t.Annotated[ConcertDetails, Tag("CONCERT")],
        t.Annotated[SeminarDetails, Tag("SEMINAR")],
        t.Annotated[MeetupDetails, Tag("MEETUP")],
    ],
    Discriminator("type"),
]

event_details_adapter: TypeAdapter[EventDetails] = TypeAdapter(EventDetails)


def parse_event_details(event_type: str, details: dict[str, t.Any]) -> EventDetails:
    """Validate a type-specific payload against the variant selected by event_type.

    The discriminant lives on the Event row; the stored payload must not carry a different one.
    """
    if details.get("type", event_type) != event_type:
        raise DjangoValidationError({"details": ["Details type does not match the event type."]})
    try:
        return event_details_adapter.validate_python({**details, "type": event_type})
    except PydanticValidationError as e:
        raise DjangoValidationError(
            {"details": [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]}
        )


class EventQuerySet(models.QuerySet["Event"]):
    def with_organization(self) -> t.Self:
        """Select the related organization."""
        return self.select_related("organization")

    def active(self) -> t.Self:
        """Events still accepting registrations."""
        return self.filter(status=Event.EventStatus.ACTIVE)


class EventManager(models.Manager["Event"]):
    def get_queryset(self) -> EventQuerySet:
        """Get base queryset."""
        return EventQuerySet(self.model, using=self._db)

    def with_organization(self) -> EventQuerySet:
        """Returns a queryset with the organization selected."""
        return self.get_queryset().with_organization()

    def active(self) -> EventQuerySet:
        """Returns only active events."""
        return self.get_queryset().active()


class Event(LocationMixin, TimeStampedModel):
    class EventType(models.TextChoices):
        WORKSHOP = "WORKSHOP", "Workshop"
        CONCERT = "CONCERT", "Concert"
        SEMINAR = "SEMINAR", "Seminar"
        MEETUP = "MEETUP", "Meetup"

    class EventStatus(models.TextChoices):
        ACTIVE = "active"
        CANCELLED = "cancelled"

    type = models.CharField(choices=EventType.choices, max_length=16, db_index=True)
    status = models.CharField(choices=EventStatus.choices, max_length=16, default=EventStatus.ACTIVE, db_index=True)
    title = models.CharField(max_length=255, validators=[MinLengthValidator(5)])
    description = models.TextField()
    price = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    organization = models.ForeignKey("events.Organization", on_delete=models.CASCADE, related_name="events")
    organization_name = models.CharField(max_length=255, help_text="Denormalized from the organization.")
    date = models.DateTimeField(db_index=True)
    banner_url = models.URLField(blank=True, null=True)
    details = models.JSONField(default=dict, blank=True, help_text="Type-specific fields.")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_events"
    )

    objects = EventManager()

    class Meta:
        ordering = ["date"]
        indexes = [
            models.Index(fields=["organization", "status"], name="idx_event_org_status"),
        ]

    def __str__(self) -> str:
        return self.title

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Fill the denormalized organization name on first save."""
        if self.organization_id and not self.organization_name:
            self.organization_name = self.organization.name
        super().save(*args, **kwargs)

    def clean(self) -> None:
        """Validate the type-specific payload and normalize it."""
        super().clean()
        if self.type:
            self.details = self.get_details().model_dump(mode="json")

    def get_details(self) -> EventDetails:
        """Return the validated type-specific payload."""
        return parse_event_details(self.type, self.details or {})

    def capacity(self) -> int | None:
        """Maximum number of participants, None if unlimited."""
        match self.get_details():
            case WorkshopDetails(max_participants=limit) | MeetupDetails(max_participants=limit):
                return limit
            case ConcertDetails() | SeminarDetails():
                return None
            case unreachable:
                t.assert_never(unreachable)

    def summary(self) -> str:
        """One line describing what is specific about this event."""
        match self.get_details():
            case WorkshopDetails(mentor_name=mentor, syllabus=syllabus):
                return f"Workshop with {mentor}, {len(syllabus)} modules"
            case ConcertDetails(lineup=lineup, gate_open=gate_open):
                return f"{', '.join(lineup)} (gates open {gate_open})"
            case SeminarDetails(speakers=speakers):
                return f"Seminar with {', '.join(s.name for s in speakers)}"
            case MeetupDetails(agenda=agenda):
                return agenda or "Meetup"
            case unreachable:
                t.assert_never(unreachable)
