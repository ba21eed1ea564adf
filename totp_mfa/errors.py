from __future__ import annotations


class TotpError(ValueError):
    """Base class for all local validation failures raised by totp_mfa."""


class InsufficientEntropyError(TotpError):
    pass


class InvalidConfigurationError(TotpError):
    pass


class InvalidSecretError(TotpError):
    pass


class MalformedInputError(TotpError):
    pass


class InvalidLabelError(TotpError):
    pass


class SecretNotFoundError(TotpError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"no totp secret for user {user_id!r}")
        self.user_id = user_id
