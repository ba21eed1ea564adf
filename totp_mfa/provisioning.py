from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qsl, quote, unquote, urlparse

from .clock import DEFAULT_STEP_SECONDS
from .engine import (
    DEFAULT_ALGORITHM,
    DEFAULT_DIGITS,
    check_digits,
    normalize_algorithm,
)
from .errors import (
    InvalidConfigurationError,
    InvalidLabelError,
    InvalidSecretError,
    MalformedInputError,
)
from .secret_generator import decode_secret, encode_secret


@dataclass(frozen=True)
class ProvisioningRecord:
    account_label: str
    issuer: str
    secret: bytes = field(repr=False)
    algorithm: str = DEFAULT_ALGORITHM
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_STEP_SECONDS

    def uri(self) -> str:
        return build_uri(
            issuer=self.issuer,
            account_label=self.account_label,
            secret=self.secret,
            algorithm=self.algorithm,
            digits=self.digits,
            period=self.period,
        )


def build_uri(
    *,
    issuer: str,
    account_label: str,
    secret: bytes,
    algorithm: str = DEFAULT_ALGORITHM,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_STEP_SECONDS,
) -> str:
    """Key URI in the Google Authenticator format.

    otpauth://totp/Issuer:account?secret=...&issuer=...&algorithm=...&digits=...&period=...

    Issuer and account are percent-encoded with no safe characters so a
    colon inside either cannot be confused with the label separator.
    """
    a = (account_label or "").strip()
    i = (issuer or "").strip()
    if not a:
        raise InvalidLabelError("account label is empty")
    if not secret:
        raise InvalidSecretError("secret is empty")
    alg = normalize_algorithm(algorithm)
    d = check_digits(digits)
    p = int(period)
    if p <= 0:
        raise InvalidConfigurationError("period must be positive")

    label_enc = quote(a, safe="")
    issuer_enc = quote(i, safe="")
    if issuer_enc:
        label_enc = f"{issuer_enc}:{label_enc}"

    qs = f"secret={encode_secret(secret)}"
    if issuer_enc:
        qs += f"&issuer={issuer_enc}"
    qs += f"&algorithm={alg}&digits={d}&period={p}"
    return f"otpauth://totp/{label_enc}?{qs}"


def parse_uri(uri: str) -> ProvisioningRecord:
    parsed = urlparse((uri or "").strip())
    if parsed.scheme != "otpauth":
        raise MalformedInputError("not an otpauth uri")
    if parsed.netloc.lower() != "totp":
        raise MalformedInputError(f"unsupported otp type {parsed.netloc!r}")

    label = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    params = dict(parse_qsl(parsed.query, keep_blank_values=True))

    label_issuer = ""
    account_enc = label
    if ":" in label:
        label_issuer, account_enc = label.split(":", 1)
        label_issuer = unquote(label_issuer)
    elif "%3A" in label.upper():
        # Some generators escape the separator too. Only trust an escaped
        # colon as the separator when the query issuer confirms the prefix.
        idx = label.upper().index("%3A")
        prefix = unquote(label[:idx]).strip()
        if prefix and prefix == params.get("issuer", "").strip():
            label_issuer, account_enc = prefix, label[idx + 3:]
    account = unquote(account_enc).strip()

    secret_text = params.get("secret", "")
    if not secret_text:
        raise MalformedInputError("no secret found in uri")
    try:
        secret = decode_secret(secret_text)
    except InvalidSecretError as e:
        raise MalformedInputError(str(e)) from e

    issuer = params.get("issuer", "").strip()
    if label_issuer and issuer and label_issuer.strip() != issuer:
        raise MalformedInputError("issuer in label and parameters must be equal")
    issuer = issuer or label_issuer.strip()

    try:
        algorithm = normalize_algorithm(params.get("algorithm", DEFAULT_ALGORITHM))
        digits = check_digits(int(params.get("digits", DEFAULT_DIGITS)))
        period = int(params.get("period", DEFAULT_STEP_SECONDS))
    except (InvalidConfigurationError, ValueError) as e:
        raise MalformedInputError(str(e)) from e
    if period <= 0:
        raise MalformedInputError("period must be positive")
    if not account:
        raise InvalidLabelError("account label is empty")

    return ProvisioningRecord(
        account_label=account,
        issuer=issuer,
        secret=secret,
        algorithm=algorithm,
        digits=digits,
        period=period,
    )
