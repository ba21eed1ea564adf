from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, Optional

from .clock import DEFAULT_STEP_SECONDS, CounterClock, Instant, counter_at
from .engine import DEFAULT_ALGORITHM, DEFAULT_DIGITS, check_digits, compute_code
from .errors import InvalidConfigurationError, MalformedInputError

if TYPE_CHECKING:
    from .settings import TotpSettings

DEFAULT_WINDOW = 1

_ASCII_DIGITS = frozenset("0123456789")


@dataclass(frozen=True)
class VerificationResult:
    accepted: bool
    matched_counter: Optional[int] = None

    @classmethod
    def accepted_at(cls, counter: int) -> "VerificationResult":
        return cls(accepted=True, matched_counter=int(counter))

    @classmethod
    def rejected(cls) -> "VerificationResult":
        return cls(accepted=False, matched_counter=None)

    def __bool__(self) -> bool:
        return self.accepted


def candidate_offsets(window: int) -> Iterator[int]:
    """Yield 0, -1, +1, -2, +2, ... up to +/- window."""
    w = int(window)
    if w < 0:
        raise InvalidConfigurationError("window must not be negative")
    yield 0
    for n in range(1, w + 1):
        yield -n
        yield n


def check_code_format(code: str, digits: int) -> str:
    c = code if isinstance(code, str) else ""
    if len(c) != digits or not all(ch in _ASCII_DIGITS for ch in c):
        raise MalformedInputError(f"code must be exactly {digits} ascii digits")
    return c


def verify(
    *,
    secret: bytes,
    code: str,
    now: Instant,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
    step_seconds: int = DEFAULT_STEP_SECONDS,
    window: int = DEFAULT_WINDOW,
) -> VerificationResult:
    """Check ``code`` against the counters around ``now``.

    A wrong or expired code is a ``Rejected`` result, not an error. This
    function keeps no state: callers that need replay protection must
    remember the last accepted counter and refuse anything not newer.
    """
    d = check_digits(digits)
    submitted = check_code_format(code, d).encode("ascii")
    offsets = list(candidate_offsets(window))
    base = counter_at(now, step_seconds)

    for delta in offsets:
        counter = base + delta
        if counter < 0:
            continue
        candidate = compute_code(
            secret=secret,
            counter=counter,
            digits=d,
            algorithm=algorithm,
        )
        if hmac.compare_digest(candidate.encode("ascii"), submitted):
            return VerificationResult.accepted_at(counter)
    return VerificationResult.rejected()


class TotpVerifier:
    def __init__(self, settings: TotpSettings, clock: Optional[CounterClock] = None) -> None:
        settings.validate()
        self._settings = settings
        self._clock = clock or CounterClock()

    @property
    def settings(self) -> TotpSettings:
        return self._settings

    @property
    def clock(self) -> CounterClock:
        return self._clock

    def verify(self, secret: bytes, code: str) -> VerificationResult:
        s = self._settings
        return verify(
            secret=secret,
            code=code,
            now=self._clock.now(),
            digits=s.digits,
            algorithm=s.algorithm,
            step_seconds=s.step_seconds,
            window=s.window,
        )
