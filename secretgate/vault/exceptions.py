"""
Vault Exceptions — error taxonomy surfaced to callers.

``DecryptionFailed`` is deliberately undifferentiated: wrong passphrase,
corrupted ciphertext and tampering all look the same to the caller.
"""


class SecretGateError(Exception):
    """Base class for every error raised by the vault."""


class InvalidInput(SecretGateError, ValueError):
    """Malformed arguments (empty identity/passphrase, wrong IV or salt size)."""


class PassphraseRequired(SecretGateError):
    """No passphrase is cached and the prompt returned nothing."""


class MalformedRecord(SecretGateError, ValueError):
    """Stored value does not parse as any known encrypted-record format."""


class DecryptionFailed(SecretGateError):
    """Wrong encryption password or corrupted data."""

    def __init__(self, message: str = "Wrong encryption password or corrupted data"):
        super().__init__(message)
