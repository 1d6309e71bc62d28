import typing as t

import structlog
from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from django.http import HttpRequest
from ninja_jwt.authentication import JWTAuth

logger = structlog.get_logger(__name__)


class OptionalAuth(JWTAuth):
    """Optional JWT authentication.

    Allows endpoints to work with or without authentication:
    - If JWT token present: Authenticates the user
    - If no JWT token: Sets request.user to AnonymousUser and continues

    This is what guest-facing endpoints use: a guest can register or cancel through a signed
    link without an account, while a logged-in organizer hitting the same endpoint is recognized.

    Usage:
        @api_controller("/registrations", auth=OptionalAuth())
        class GuestRegistrationController:
            def cancel(self, request):
                user = request.user  # Could be RollcallUser or AnonymousUser
    """

    def __call__(self, request: HttpRequest) -> t.Any | None:
        """Overrides JWTAuth __call__ to provide optional auth."""
        headers = request.headers
        auth_value = headers.get(self.header)
        if not auth_value:
            request.user = AnonymousUser()
            return request.user
        parts = auth_value.split(" ")

        if parts[0].lower() != self.openapi_scheme:
            if settings.DEBUG:
                logger.error("unexpected_auth_header", scheme=parts[0])
            return None
        token = " ".join(parts[1:])
        return self.authenticate(request, token)
