"""Celery tasks for event management."""

import structlog
from celery import shared_task

from .models import Organization

logger = structlog.get_logger(__name__)


@shared_task(name="events.sync_event_organization_names")
def sync_event_organization_names(organization_id: str) -> int:
    """Propagate an organization's current name to the denormalized copy on its events."""
    from .service.event_service import sync_organization_name

    organization = Organization.objects.filter(pk=organization_id).first()
    if organization is None:
        logger.warning("sync_event_organization_names_missing", organization_id=organization_id)
        return 0
    return sync_organization_name(organization)
