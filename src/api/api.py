from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import HttpRequest
from ninja_extra import NinjaExtraAPI
from ninja_jwt.controller import NinjaJWTDefaultController

from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers.event_admin import EVENT_ADMIN_CONTROLLERS
from events.controllers.events import EventController
from events.controllers.organization import OrganizationController
from events.controllers.organization_admin import ORGANIZATION_ADMIN_CONTROLLERS
from events.controllers.registrations import RegistrationController
from events.exceptions import AlreadyMemberError, InfrastructureError, RegistrationError

from .exception_handlers import (
    handle_already_member_error,
    handle_django_validation_error,
    handle_general_exception,
    handle_infrastructure_error,
    handle_registration_error,
)

api = NinjaExtraAPI(
    title="Rollcall API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Rollcall API {settings.VERSION}",
    app_name=f"rollcall-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.register_controllers(
    NinjaJWTDefaultController,
    OrganizationController,
    *ORGANIZATION_ADMIN_CONTROLLERS,
    EventController,
    *EVENT_ADMIN_CONTROLLERS,
    RegistrationController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    RegistrationError: handle_registration_error,
    InfrastructureError: handle_infrastructure_error,
    AlreadyMemberError: handle_already_member_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
