from decouple import config

# Entropy of QR hashes in bytes. 32 bytes encode to 43 URL-safe characters.
QR_HASH_BYTES = config("QR_HASH_BYTES", default=32, cast=int)
QR_HASH_MAX_ATTEMPTS = config("QR_HASH_MAX_ATTEMPTS", default=5, cast=int)

CANCELLATION_LINK_TTL_SECONDS = config("CANCELLATION_LINK_TTL_SECONDS", default=60 * 60 * 24 * 30, cast=int)
