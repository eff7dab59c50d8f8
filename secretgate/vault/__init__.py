"""Secret Vault — Passphrase-derived encryption of user secrets.

Security Note (Threat Model):
    Passphrases are cached in plaintext by the injected store for the
    session, and decrypted values live in process memory while in use.
    A compromised host can read both. This is an accepted limitation.
"""

from .service import SecretService, SelfTestState
from .gate import PassphraseGate
from .config import SecretGateConfig
from .codec import EncryptedRecord, LegacyEncryptedRecord, is_encrypted_record
from .crypto import hash_password, verify_password, generate_token
from .exceptions import (
    SecretGateError,
    InvalidInput,
    PassphraseRequired,
    MalformedRecord,
    DecryptionFailed,
)

__all__ = [
    "SecretService",
    "SelfTestState",
    "PassphraseGate",
    "SecretGateConfig",
    "EncryptedRecord",
    "LegacyEncryptedRecord",
    "is_encrypted_record",
    "hash_password",
    "verify_password",
    "generate_token",
    "SecretGateError",
    "InvalidInput",
    "PassphraseRequired",
    "MalformedRecord",
    "DecryptionFailed",
]
