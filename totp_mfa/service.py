from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from .clock import CounterClock
from .db import get_conn
from .errors import SecretNotFoundError
from .event_log import MfaEvent, log_event, recent_events as read_events
from .provisioning import ProvisioningRecord
from .secret_generator import generate_secret
from .settings import TotpSettings
from .store import SecretStore, SqliteSecretStore, StoredSecret
from .verifier import VerificationResult, verify


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _audit(actor: str, action: str, details: str) -> None:
    with get_conn() as conn:
        conn.execute(
            (
                "insert into audit_log(actor, action, details, created_at) "
                "values(?, ?, ?, ?)"
            ),
            (actor, action, details, _now_iso()),
        )
        conn.commit()


class MfaService:
    """Per-user TOTP enrollment and verification on top of a secret store.

    Verification uses the algorithm, digits and period stored with each
    secret, so changing the defaults does not break existing enrollments.
    The window comes from the current settings.
    """

    def __init__(
        self,
        *,
        settings: TotpSettings,
        store: Optional[SecretStore] = None,
        clock: Optional[CounterClock] = None,
    ) -> None:
        self._settings = settings.validate()
        self._store = store or SqliteSecretStore()
        self._clock = clock or CounterClock()

    @property
    def settings(self) -> TotpSettings:
        return self._settings

    def _require(self, user_id: str) -> StoredSecret:
        stored = self._store.load(user_id)
        if stored is None:
            raise SecretNotFoundError(user_id)
        return stored

    def _record(self, stored: StoredSecret, account_label: str) -> ProvisioningRecord:
        return ProvisioningRecord(
            account_label=account_label,
            issuer=self._settings.issuer,
            secret=stored.secret,
            algorithm=stored.algorithm,
            digits=stored.digits,
            period=stored.period,
        )

    def begin_enrollment(self, user_id: str, account_label: str) -> ProvisioningRecord:
        s = self._settings
        secret = generate_secret(s.secret_bytes)
        record = ProvisioningRecord(
            account_label=account_label,
            issuer=s.issuer,
            secret=secret,
            algorithm=s.algorithm,
            digits=s.digits,
            period=s.step_seconds,
        )
        # Build the uri first so a bad label fails before anything is stored.
        record.uri()
        self._store.save(
            user_id,
            secret,
            algorithm=s.algorithm,
            digits=s.digits,
            period=s.step_seconds,
        )
        _audit(user_id, "totp_generate", f"algorithm={s.algorithm};digits={s.digits}")
        log_event("enroll_begin", user_id, algorithm=s.algorithm, digits=s.digits)
        return record

    def provisioning_record(self, user_id: str, account_label: str) -> ProvisioningRecord:
        return self._record(self._require(user_id), account_label)

    def _check(self, stored: StoredSecret, code: str) -> VerificationResult:
        result = verify(
            secret=stored.secret,
            code=code,
            now=self._clock.now(),
            digits=stored.digits,
            algorithm=stored.algorithm,
            step_seconds=stored.period,
            window=self._settings.window,
        )
        if not result:
            return result
        if not self._store.record_accepted_counter(stored.user_id, result.matched_counter):
            log_event("replay_rejected", stored.user_id, counter=result.matched_counter)
            return VerificationResult.rejected()
        return result

    def confirm_enrollment(self, user_id: str, code: str) -> VerificationResult:
        stored = self._require(user_id)
        result = self._check(stored, code)
        if not result:
            log_event("enroll_confirm_rejected", user_id)
            return result
        if not stored.enabled:
            self._store.enable(user_id)
            _audit(user_id, "totp_enable", "")
        log_event("enroll_confirmed", user_id, counter=result.matched_counter)
        return result

    def verify(self, user_id: str, code: str) -> VerificationResult:
        stored = self._require(user_id)
        if not stored.enabled:
            raise SecretNotFoundError(user_id)
        result = self._check(stored, code)
        if result:
            log_event("verify_ok", user_id, counter=result.matched_counter)
        else:
            log_event("verify_rejected", user_id)
        return result

    def disable(self, user_id: str) -> bool:
        removed = self._store.delete(user_id)
        if removed:
            _audit(user_id, "totp_disable", "")
            log_event("disabled", user_id)
        return removed

    def recent_events(self, user_id: str, limit: int = 20) -> List[MfaEvent]:
        return read_events(user_id=user_id, limit=limit)
