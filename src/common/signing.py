"""HMAC-based signing for guest cancellation links.

A guest who registered without an account proves ownership of a registration by presenting
the cancellation token that was handed out together with the QR payload.

Token Format:
    <expires>.<signature>

    e.g. 1704067200.a1b2c3d4e5f6a7b8c9d0e1f2a3b4c5d6

Security:
    - Uses Django's SECRET_KEY with a domain-specific prefix for isolation
    - Signatures are 32 hex chars (128 bits)
    - Uses hmac.compare_digest() to prevent timing attacks
    - Timestamps prevent indefinite link reuse
"""

import hashlib
import hmac
import time
from functools import lru_cache
from uuid import UUID

from django.conf import settings

__all__ = [
    "generate_signature",
    "verify_signature",
    "generate_cancellation_token",
    "verify_cancellation_token",
]

SIGNATURE_LENGTH = 32

# Domain separator for key derivation
# Ensures the cancellation signing key is isolated from other SECRET_KEY uses
_KEY_DOMAIN = "rollcall:cancel-registration:v1"


@lru_cache(maxsize=1)
def _get_signing_key() -> bytes:
    """Get the signing key, derived from Django's SECRET_KEY.

    The key is lazily computed on first use and cached for the lifetime
    of the process. This avoids issues with settings not being configured
    at module import time (e.g., during some test setups).

    Returns:
        Bytes suitable for HMAC-SHA256 signing.
    """
    return hashlib.sha256(f"{_KEY_DOMAIN}:{settings.SECRET_KEY}".encode()).digest()


def generate_signature(registration_id: UUID | str, expires: int) -> str:
    """Generate an HMAC signature for a registration id and expiration timestamp.

    Args:
        registration_id: The registration the link cancels.
        expires: Unix timestamp when the link expires.

    Returns:
        Hex-encoded signature (truncated to SIGNATURE_LENGTH chars).
    """
    message = f"{registration_id}:{expires}"
    return hmac.new(
        _get_signing_key(),
        message.encode(),
        hashlib.sha256,
    ).hexdigest()[:SIGNATURE_LENGTH]


def verify_signature(registration_id: UUID | str, exp: str, sig: str) -> bool:
    """Verify a cancellation signature.

    Args:
        registration_id: The registration that was signed.
        exp: The expiration timestamp as a string.
        sig: The signature to verify.

    Returns:
        True if signature is valid and the link hasn't expired, False otherwise.
    """
    try:
        expires = int(exp)
    except (ValueError, TypeError):
        return False

    # Check expiration first (cheap operation)
    if expires <= time.time():
        return False

    expected = generate_signature(registration_id, expires)
    return hmac.compare_digest(sig, expected)


def generate_cancellation_token(registration_id: UUID | str, *, expires_in: int | None = None) -> str:
    """Generate a cancellation token for a registration.

    Args:
        registration_id: The registration the token may cancel.
        expires_in: Seconds until the token expires (default: CANCELLATION_LINK_TTL_SECONDS).

    Returns:
        The token as ``<expires>.<signature>``.
    """
    if expires_in is None:
        expires_in = settings.CANCELLATION_LINK_TTL_SECONDS
    expires = int(time.time()) + expires_in
    return f"{expires}.{generate_signature(registration_id, expires)}"


def verify_cancellation_token(registration_id: UUID | str, token: str | None) -> bool:
    """Check a token produced by generate_cancellation_token for the given registration."""
    if not token or "." not in token:
        return False
    exp, sig = token.split(".", 1)
    return verify_signature(registration_id, exp, sig)
