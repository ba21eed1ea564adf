from __future__ import annotations

import hmac
import struct
from hashlib import sha1, sha256, sha512

from .clock import DEFAULT_STEP_SECONDS, Instant, counter_at
from .errors import InvalidConfigurationError, InvalidSecretError

DEFAULT_DIGITS = 6
DEFAULT_ALGORITHM = "SHA1"
MIN_DIGITS = 6
MAX_DIGITS = 8

ALGORITHMS = {
    "SHA1": sha1,
    "SHA256": sha256,
    "SHA512": sha512,
}


def normalize_algorithm(algorithm: str) -> str:
    name = (algorithm or "").strip().upper().replace("-", "")
    if name not in ALGORITHMS:
        raise InvalidConfigurationError(
            f"unsupported algorithm {algorithm!r}; expected SHA1, SHA256 or SHA512"
        )
    return name


def check_digits(digits: int) -> int:
    d = int(digits)
    if d < MIN_DIGITS or d > MAX_DIGITS:
        raise InvalidConfigurationError(
            f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}"
        )
    return d


def compute_code(
    *,
    secret: bytes,
    counter: int,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """HOTP value (RFC 4226) of ``secret`` at ``counter``, zero padded to ``digits``."""
    if not secret:
        raise InvalidSecretError("secret is empty")
    d = check_digits(digits)
    digestmod = ALGORITHMS[normalize_algorithm(algorithm)]
    c = int(counter)
    if c < 0:
        raise InvalidConfigurationError("counter must not be negative")

    msg = struct.pack(">Q", c)
    digest = hmac.new(bytes(secret), msg, digestmod).digest()
    off = digest[-1] & 0x0F
    code_int = struct.unpack(">I", digest[off:off + 4])[0] & 0x7FFFFFFF
    return str(code_int % (10**d)).zfill(d)


def code_at(
    *,
    secret: bytes,
    when: Instant,
    step_seconds: int = DEFAULT_STEP_SECONDS,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    return compute_code(
        secret=secret,
        counter=counter_at(when, step_seconds),
        digits=digits,
        algorithm=algorithm,
    )
