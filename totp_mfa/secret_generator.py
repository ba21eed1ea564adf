from __future__ import annotations

import base64
import binascii
import secrets

from .errors import InsufficientEntropyError, InvalidConfigurationError, InvalidSecretError

DEFAULT_SECRET_BYTES = 20
MIN_SECRET_BYTES = 16


def generate_secret(length_bytes: int = DEFAULT_SECRET_BYTES) -> bytes:
    n = int(length_bytes)
    if n < MIN_SECRET_BYTES:
        raise InvalidConfigurationError(
            f"secret length must be at least {MIN_SECRET_BYTES} bytes"
        )
    try:
        raw = secrets.token_bytes(n)
    except (OSError, NotImplementedError) as e:
        raise InsufficientEntropyError("system random source unavailable") from e
    if len(raw) != n:
        raise InsufficientEntropyError(
            f"random source returned {len(raw)} of {n} bytes"
        )
    return raw


def encode_secret(secret: bytes) -> str:
    if not secret:
        raise InvalidSecretError("secret is empty")
    return base64.b32encode(secret).decode("ascii").rstrip("=")


def _normalize_base32(text: str) -> str:
    s = (text or "").strip().replace(" ", "").replace("-", "").upper().rstrip("=")
    pad = (-len(s)) % 8
    return s + ("=" * pad)


def decode_secret(text: str) -> bytes:
    """Decode a Base32 secret as typed by a person or stored without padding."""
    s = _normalize_base32(text)
    if not s:
        raise InvalidSecretError("secret is empty")
    try:
        raw = base64.b32decode(s, casefold=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidSecretError("secret is not valid base32") from e
    if not raw:
        raise InvalidSecretError("secret is empty")
    return raw


def generate_base32_secret(*, nbytes: int = DEFAULT_SECRET_BYTES) -> str:
    return encode_secret(generate_secret(nbytes))
