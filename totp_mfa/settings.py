from __future__ import annotations

import os
from dataclasses import dataclass

from .db import get_conn
from .engine import check_digits, normalize_algorithm
from .errors import InvalidConfigurationError
from .secret_generator import MIN_SECRET_BYTES


@dataclass(frozen=True)
class TotpSettings:
    issuer: str = "TOTP_MFA"
    digits: int = 6
    algorithm: str = "SHA1"
    step_seconds: int = 30
    window: int = 1
    secret_bytes: int = 20

    def validate(self) -> "TotpSettings":
        check_digits(self.digits)
        normalize_algorithm(self.algorithm)
        if self.step_seconds <= 0:
            raise InvalidConfigurationError("step_seconds must be positive")
        if self.window < 0:
            raise InvalidConfigurationError("window must not be negative")
        if self.secret_bytes < MIN_SECRET_BYTES:
            raise InvalidConfigurationError(
                f"secret_bytes must be at least {MIN_SECRET_BYTES}"
            )
        return self


DEFAULTS = {
    "issuer": "TOTP_MFA",
    "digits": "6",
    "algorithm": "SHA1",
    "step_seconds": "30",
    "window": "1",
    "secret_bytes": "20",
    "bind_host": "127.0.0.1",
    "bind_port": "2590",
}


def _env_key(key: str) -> str:
    return "TOTP_MFA_" + key.upper()


def get_setting(key: str) -> str:
    env = os.environ.get(_env_key(key))
    if env is not None and env.strip():
        return env
    with get_conn() as conn:
        row = conn.execute("select value from settings where key = ?", (key,)).fetchone()
        if row is None:
            return DEFAULTS.get(key, "")
        return str(row["value"])


def set_setting(key: str, value: str) -> None:
    with get_conn() as conn:
        conn.execute(
            "insert into settings(key, value) values(?, ?) on conflict(key) do update set value = excluded.value",
            (key, value),
        )
        conn.commit()


def _int_setting(key: str) -> int:
    raw = get_setting(key).strip() or DEFAULTS[key]
    try:
        return int(raw)
    except ValueError:
        return int(DEFAULTS[key])


def load_totp_settings() -> TotpSettings:
    settings = TotpSettings(
        issuer=get_setting("issuer").strip(),
        digits=_int_setting("digits"),
        algorithm=normalize_algorithm(get_setting("algorithm").strip() or DEFAULTS["algorithm"]),
        step_seconds=_int_setting("step_seconds"),
        window=_int_setting("window"),
        secret_bytes=_int_setting("secret_bytes"),
    )
    return settings.validate()
