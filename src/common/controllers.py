import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

from accounts.identity import Identity, resolve_identity
from accounts.models import RollcallUser


class UserAwareController(ControllerBase):
    def maybe_user(self) -> RollcallUser | AnonymousUser:
        """Get the user for this request."""
        return t.cast(RollcallUser | AnonymousUser, self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> RollcallUser:
        """Get the user for this request."""
        return t.cast(RollcallUser, self.context.request.user)  # type: ignore[union-attr]

    def identity(self) -> Identity | None:
        """Resolve the caller into an Identity carrying its organization memberships.

        Resolved once per request; later calls reuse it.
        """
        request = self.context.request  # type: ignore[union-attr]
        if not hasattr(request, "_rollcall_identity"):
            request._rollcall_identity = resolve_identity(self.maybe_user())
        return t.cast(Identity | None, request._rollcall_identity)
