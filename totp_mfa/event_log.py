from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .db import data_dir

MAX_LOG_BYTES = 5 * 1024 * 1024
TAIL_READ_BYTES = 256 * 1024


@dataclass(frozen=True)
class MfaEvent:
    at: str
    action: str
    user_id: str
    fields: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"at": self.at, "action": self.action, "user_id": self.user_id, **self.fields}


def _log_path() -> str:
    return os.path.join(data_dir(), "mfa.log")


def _token(value: object) -> str:
    # One event per line, space separated key=value pairs.
    return "".join("_" if ch.isspace() else ch for ch in str(value)) or "-"


def _shrink(path: str) -> None:
    """Drop the older half of the log once it grows past MAX_LOG_BYTES."""
    try:
        if os.path.getsize(path) <= MAX_LOG_BYTES:
            return
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.readlines()
        keep = lines[len(lines) // 2 :]
        while len(keep) > 1 and sum(len(ln.encode("utf-8")) for ln in keep) > MAX_LOG_BYTES // 2:
            keep = keep[len(keep) // 2 :]
        with open(path, "w", encoding="utf-8") as f:
            f.writelines(keep)
    except OSError:
        return


def log_event(action: str, user_id: str, **fields: object) -> None:
    """Record an MFA event. Callers never pass secrets or submitted codes."""
    parts = [
        datetime.now(timezone.utc).isoformat(),
        _token(action),
        f"user={_token(user_id)}",
    ]
    parts.extend(f"{_token(k)}={_token(v)}" for k, v in fields.items())
    path = _log_path()
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(" ".join(parts) + "\n")
    except OSError:
        return
    _shrink(path)


def _parse(line: str) -> Optional[MfaEvent]:
    parts = line.split()
    if len(parts) < 3 or not parts[2].startswith("user="):
        return None
    extra = dict(p.split("=", 1) for p in parts[3:] if "=" in p)
    return MfaEvent(at=parts[0], action=parts[1], user_id=parts[2][5:], fields=extra)


def recent_events(*, user_id: Optional[str] = None, limit: int = 50) -> list:
    """Newest first, optionally only for ``user_id``."""
    n = int(limit)
    if n <= 0:
        return []
    path = _log_path()
    try:
        with open(path, "rb") as f:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            f.seek(max(0, size - TAIL_READ_BYTES))
            data = f.read()
    except OSError:
        return []

    lines = data.decode("utf-8", errors="replace").splitlines()
    if size > TAIL_READ_BYTES and lines:
        lines = lines[1:]

    wanted = _token(user_id) if user_id is not None else None
    events = []
    for line in reversed(lines):
        event = _parse(line)
        if event is None or (wanted is not None and event.user_id != wanted):
            continue
        events.append(event)
        if len(events) >= n:
            break
    return events
