"""
SecretService — Passphrase-based encryption of user secrets.

Provides the public API consumed by persistence layers:
- ``encrypt_with_identity(value, identity)`` — encrypt under the resolved passphrase
- ``decrypt_with_identity(raw, identity)`` — decrypt a stored record
- ``self_test(identity)`` — round-trip check of the current passphrase
- ``set_passphrase(identity, passphrase)`` / ``clear_passphrase(identity)``

Every call derives its keys from scratch; the service holds no key material
between calls.

Known limitation:
    Changing a passphrase does not re-encrypt existing records. Records
    written under the old passphrase fail with ``DecryptionFailed`` and must
    be re-entered by the user.

Security Note:
    Never log plaintext, ciphertext or passphrases. Only log identities
    and operations.
"""
import logging
from enum import Enum
from typing import Optional

from ..store import KeyValueStore, MemoryStore, FileStore
from . import codec, crypto
from .codec import EncryptedRecord, LegacyEncryptedRecord
from .config import SecretGateConfig
from .exceptions import DecryptionFailed, InvalidInput, PassphraseRequired
from .gate import PassphraseGate, PassphrasePrompt

logger = logging.getLogger("secretgate.vault")


class SelfTestState(str, Enum):
    """Passphrase verification state shown to the user."""

    UNKNOWN = "unknown"
    VERIFIED = "verified"
    FAILED = "failed"


class SecretService:
    """Encrypts and decrypts secret strings for an identity.

    The store and the prompt are injected; the service builds and owns the
    ``PassphraseGate`` that wraps them.
    """

    def __init__(
        self,
        store: KeyValueStore,
        prompt: PassphrasePrompt,
        config: Optional[SecretGateConfig] = None,
    ):
        self._config = config or SecretGateConfig()
        self._gate = PassphraseGate(
            store, prompt, storage_prefix=self._config.storage_prefix,
        )

    @classmethod
    def from_config(
        cls,
        prompt: PassphrasePrompt,
        config: Optional[SecretGateConfig] = None,
    ) -> "SecretService":
        """Build a service with the store selected by ``config``.

        A ``FileStore`` is used when ``store_path`` is set, otherwise a
        ``MemoryStore``.
        """
        config = config or SecretGateConfig.from_env()
        if config.store_path is not None:
            store: KeyValueStore = FileStore(config.store_path)
        else:
            store = MemoryStore()
        return cls(store, prompt, config=config)

    @property
    def config(self) -> SecretGateConfig:
        """Settings this service was built with."""
        return self._config

    # ------------------------------------------------------------------
    # Explicit-passphrase operations
    # ------------------------------------------------------------------

    def encrypt(self, value: str, identity: str, passphrase: str) -> str:
        """Encrypt ``value`` and return the serialized record.

        A fresh salt and IV are drawn for every call.

        Raises:
            InvalidInput: If value, identity or passphrase is empty.
        """
        if not value:
            raise InvalidInput("Value to encrypt cannot be empty")
        master = crypto.derive_master_key_material(identity, passphrase)
        salt = crypto.generate_salt()
        iv = crypto.generate_iv()
        key = crypto.derive_per_record_key(master, salt)
        record = EncryptedRecord(
            ciphertext=crypto.encrypt(value, key, iv), iv=iv, salt=salt,
        )
        logger.debug("Encrypted value: identity=%s", identity)
        return codec.serialize(record)

    def decrypt(self, raw: str, identity: str, passphrase: str) -> str:
        """Decrypt a serialized record, current or legacy.

        Raises:
            MalformedRecord: If ``raw`` matches no known format.
            InvalidInput: If identity or passphrase is empty.
            DecryptionFailed: Wrong passphrase or corrupted data.
        """
        record = codec.parse(raw)
        master = crypto.derive_master_key_material(identity, passphrase)
        if isinstance(record, LegacyEncryptedRecord):
            return self._decrypt_legacy(record, master, identity)
        return self._decrypt_record(record, master, identity)

    def _decrypt_record(
        self, record: EncryptedRecord, master: bytes, identity: str,
    ) -> str:
        key = crypto.derive_per_record_key(master, record.salt)
        try:
            plaintext = crypto.decrypt(record.ciphertext, key, record.iv)
        except DecryptionFailed:
            logger.warning("Decryption failed: identity=%s", identity)
            raise
        logger.debug("Decrypted value: identity=%s", identity)
        return plaintext

    def _decrypt_legacy(
        self, record: LegacyEncryptedRecord, master: bytes, identity: str,
    ) -> str:
        logger.warning(
            "Using legacy encryption format for identity=%s, "
            "consider re-encrypting data", identity,
        )
        try:
            unpacked = record.unpack()
        except DecryptionFailed:
            logger.warning("Legacy decryption failed: identity=%s", identity)
            raise
        return self._decrypt_record(unpacked, master, identity)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def encrypt_with_identity(self, value: str, identity: str) -> str:
        """Encrypt ``value`` under the passphrase resolved for ``identity``.

        Raises:
            PassphraseRequired: If no passphrase could be obtained.
            InvalidInput: If value or identity is empty.
        """
        passphrase = await self._gate.resolve(identity)
        return self.encrypt(value, identity, passphrase)

    async def decrypt_with_identity(self, raw: str, identity: str) -> str:
        """Decrypt ``raw`` under the passphrase resolved for ``identity``.

        Raises:
            PassphraseRequired: If no passphrase could be obtained.
            MalformedRecord: If ``raw`` matches no known format.
            DecryptionFailed: Wrong passphrase or corrupted data.
        """
        passphrase = await self._gate.resolve(identity)
        return self.decrypt(raw, identity, passphrase)

    async def self_test(self, identity: str) -> bool:
        """Round-trip a known value under the current passphrase.

        Returns:
            True if the decrypted value matches the original.

        Raises:
            PassphraseRequired: If no passphrase could be obtained.
        """
        passphrase = await self._gate.resolve(identity)
        expected = self._config.self_test_value
        encrypted = self.encrypt(expected, identity, passphrase)
        try:
            passed = self.decrypt(encrypted, identity, passphrase) == expected
        except DecryptionFailed:
            passed = False
        logger.info("Self-test %s: identity=%s", "passed" if passed else "failed", identity)
        return passed

    async def verify(self, identity: str) -> SelfTestState:
        """Run the self-test and map the outcome to a ``SelfTestState``."""
        try:
            passed = await self.self_test(identity)
        except PassphraseRequired:
            return SelfTestState.UNKNOWN
        return SelfTestState.VERIFIED if passed else SelfTestState.FAILED

    def set_passphrase(self, identity: str, passphrase: str) -> None:
        """Cache ``passphrase`` for ``identity``."""
        self._gate.set(identity, passphrase)

    def clear_passphrase(self, identity: str) -> None:
        """Forget the passphrase for ``identity``; the next call prompts again."""
        self._gate.clear(identity)

    def has_passphrase(self, identity: str) -> bool:
        """Return True if a passphrase is cached for ``identity``.

        Never prompts. Used to decide whether a call may suspend on the prompt.
        """
        return self._gate.cached(identity)
