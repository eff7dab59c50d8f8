"""SecretGate.

Passphrase-derived encryption for API keys, tokens and other secrets.
"""
from .version import __version__
from .store import KeyValueStore, MemoryStore, FileStore
from .vault import (
    SecretService,
    SelfTestState,
    SecretGateConfig,
    InvalidInput,
    PassphraseRequired,
    MalformedRecord,
    DecryptionFailed,
)

__all__ = [
    "__version__",
    "KeyValueStore",
    "MemoryStore",
    "FileStore",
    "SecretService",
    "SelfTestState",
    "SecretGateConfig",
    "InvalidInput",
    "PassphraseRequired",
    "MalformedRecord",
    "DecryptionFailed",
]
