"""QR hash generation and the payload encoded into scannable codes.

The payload carries the registration and event ids for display purposes only. Check-in trusts
nothing but the qr_hash and cross-checks the other two against the record it finds.
"""

import base64
import binascii
import secrets
from uuid import UUID

import orjson
from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from events.exceptions import ValidationError
from events.models import Registration


class QRPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    registration_id: UUID = Field(alias="registrationId")
    event_id: UUID = Field(alias="eventId")
    qr_hash: str = Field(alias="qrHash", min_length=1, max_length=128)


def generate_qr_hash() -> str:
    """Return a fresh URL-safe token with QR_HASH_BYTES bytes of entropy."""
    return secrets.token_urlsafe(settings.QR_HASH_BYTES)


def payload_for(registration: Registration) -> QRPayload:
    """Build the QR payload of a registration."""
    return QRPayload(registration_id=registration.id, event_id=registration.event_id, qr_hash=registration.qr_hash)


def encode_payload(source: Registration | QRPayload) -> str:
    """Serialize a registration (or a payload) into the compact string placed in the QR code."""
    payload = payload_for(source) if isinstance(source, Registration) else source
    raw = orjson.dumps(payload.model_dump(mode="json", by_alias=True))
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def decode_payload(value: str) -> QRPayload:
    """Parse a scanned QR string.

    Raises:
        ValidationError: if the string is not a well-formed payload.
    """
    padded = value.strip() + "=" * (-len(value.strip()) % 4)
    try:
        data = orjson.loads(base64.urlsafe_b64decode(padded.encode()))
        return QRPayload.model_validate(data)
    except (binascii.Error, ValueError, orjson.JSONDecodeError, PydanticValidationError, TypeError):
        raise ValidationError({"qr_payload": ["Unreadable QR payload."]})
