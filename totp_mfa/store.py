from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol

from .db import get_conn
from .engine import check_digits, normalize_algorithm
from .errors import MalformedInputError
from .secret_generator import decode_secret, encode_secret


@dataclass(frozen=True)
class StoredSecret:
    user_id: str
    secret: bytes = field(repr=False)
    algorithm: str
    digits: int
    period: int
    enabled: bool
    last_counter: int


class SecretStore(Protocol):
    def load(self, user_id: str) -> Optional[StoredSecret]: ...

    def save(
        self,
        user_id: str,
        secret: bytes,
        *,
        algorithm: str = "SHA1",
        digits: int = 6,
        period: int = 30,
    ) -> None: ...

    def enable(self, user_id: str) -> bool: ...

    def delete(self, user_id: str) -> bool: ...

    def record_accepted_counter(self, user_id: str, counter: int) -> bool: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _user(user_id: str) -> str:
    u = (user_id or "").strip()
    if not u:
        raise MalformedInputError("user_id is required")
    return u


class SqliteSecretStore:
    """One secret per user, Base32 encoded in the ``totp_secrets`` table.

    Nothing is cached between calls.
    """

    def load(self, user_id: str) -> Optional[StoredSecret]:
        u = _user(user_id)
        with get_conn() as conn:
            row = conn.execute(
                (
                    "select user_id, secret_b32, algorithm, digits, period, "
                    "enabled, last_counter from totp_secrets where user_id = ?"
                ),
                (u,),
            ).fetchone()
        if row is None:
            return None
        return StoredSecret(
            user_id=str(row["user_id"]),
            secret=decode_secret(str(row["secret_b32"])),
            algorithm=str(row["algorithm"]),
            digits=int(row["digits"]),
            period=int(row["period"]),
            enabled=int(row["enabled"]) == 1,
            last_counter=int(row["last_counter"]),
        )

    def save(
        self,
        user_id: str,
        secret: bytes,
        *,
        algorithm: str = "SHA1",
        digits: int = 6,
        period: int = 30,
    ) -> None:
        """Store ``secret`` as a pending (disabled) secret, replacing any previous one."""
        u = _user(user_id)
        now = _now_iso()
        with get_conn() as conn:
            conn.execute(
                (
                    "insert into totp_secrets("
                    "user_id, secret_b32, algorithm, digits, period, "
                    "enabled, last_counter, created_at, updated_at"
                    ") values(?, ?, ?, ?, ?, 0, -1, ?, ?) "
                    "on conflict(user_id) do update set "
                    "secret_b32 = excluded.secret_b32, "
                    "algorithm = excluded.algorithm, "
                    "digits = excluded.digits, "
                    "period = excluded.period, "
                    "enabled = 0, last_counter = -1, "
                    "updated_at = excluded.updated_at"
                ),
                (
                    u,
                    encode_secret(secret),
                    normalize_algorithm(algorithm),
                    check_digits(digits),
                    int(period),
                    now,
                    now,
                ),
            )
            conn.commit()

    def enable(self, user_id: str) -> bool:
        u = _user(user_id)
        with get_conn() as conn:
            cur = conn.execute(
                "update totp_secrets set enabled = 1, updated_at = ? where user_id = ?",
                (_now_iso(), u),
            )
            conn.commit()
            return cur.rowcount == 1

    def delete(self, user_id: str) -> bool:
        u = _user(user_id)
        with get_conn() as conn:
            cur = conn.execute("delete from totp_secrets where user_id = ?", (u,))
            conn.commit()
            return cur.rowcount == 1

    def record_accepted_counter(self, user_id: str, counter: int) -> bool:
        """Advance the last accepted counter; False if ``counter`` is not newer."""
        u = _user(user_id)
        with get_conn() as conn:
            cur = conn.execute(
                (
                    "update totp_secrets set last_counter = ?, updated_at = ? "
                    "where user_id = ? and last_counter < ?"
                ),
                (int(counter), _now_iso(), u, int(counter)),
            )
            conn.commit()
            return cur.rowcount == 1
