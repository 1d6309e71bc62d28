import typing as t
from uuid import UUID

import structlog
from django.db import transaction

from accounts.models import RollcallUser
from events.exceptions import NotFoundError
from events.models import Event, Organization, Registration

logger = structlog.get_logger(__name__)


def get_by_id(event_id: UUID) -> Event:
    """Get an event, correcting its denormalized organization name on read.

    Raises:
        NotFoundError: if the event does not exist.
    """
    event = Event.objects.with_organization().filter(pk=event_id).first()
    if event is None:
        raise NotFoundError()
    if event.organization_name != event.organization.name:
        logger.info(
            "event_organization_name_corrected", event_id=str(event.pk), organization_id=str(event.organization_id)
        )
        Event.objects.filter(pk=event.pk).update(organization_name=event.organization.name)
        event.organization_name = event.organization.name
    return event


def belongs_to_org(event_id: UUID, org_id: UUID) -> bool:
    """Check whether the event is owned by the organization."""
    return Event.objects.filter(pk=event_id, organization_id=org_id).exists()


def create_event(organization: Organization, created_by: RollcallUser | None, **data: t.Any) -> Event:
    """Create an event with its type-specific details.

    The model validates details against the variant selected by type on save.
    """
    event = Event.objects.create(
        organization=organization,
        organization_name=organization.name,
        created_by=created_by,
        **data,
    )
    logger.info("event_created", event_id=str(event.pk), organization_id=str(organization.pk), type=event.type)
    return event


@transaction.atomic
def cancel_event(event: Event) -> Event:
    """Cancel an event on the organizer's side.

    Existing registrations are left as they are; the event just stops accepting new ones.
    """
    Event.objects.filter(pk=event.pk).update(status=Event.EventStatus.CANCELLED)
    event.refresh_from_db()
    logger.info(
        "event_cancelled",
        event_id=str(event.pk),
        open_registrations=Registration.objects.filter(event=event).not_cancelled().count(),
    )
    return event


def sync_organization_name(organization: Organization) -> int:
    """Rewrite the denormalized organization name on all of its events.

    Returns:
        Number of events updated.
    """
    updated = Event.objects.filter(organization=organization).exclude(organization_name=organization.name).update(
        organization_name=organization.name
    )
    if updated:
        logger.info("event_organization_names_synced", organization_id=str(organization.pk), updated=updated)
    return updated
