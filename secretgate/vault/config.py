"""
Vault Configuration — Validated settings for the secret service.

Reads optional overrides from environment variables:
    SECRETGATE_STORAGE_PREFIX = <store key prefix for cached passphrases>
    SECRETGATE_SELF_TEST_VALUE = <plaintext used by the self-test>
    SECRETGATE_STORE_PATH = <path of a JSON file store>

PBKDF2 parameters are not configurable; they are fixed in ``crypto``.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_STORAGE_PREFIX = "secretgate_passphrase_"
DEFAULT_SELF_TEST_VALUE = "test-encryption-123"


class SecretGateConfig(BaseModel):
    """Validated secret service configuration."""

    storage_prefix: str = Field(default=DEFAULT_STORAGE_PREFIX, min_length=1)
    self_test_value: str = Field(default=DEFAULT_SELF_TEST_VALUE, min_length=1)
    store_path: Optional[Path] = None

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls) -> "SecretGateConfig":
        """Create SecretGateConfig by loading values from environment.

        Returns:
            Populated SecretGateConfig instance.
        """
        store_path = os.environ.get("SECRETGATE_STORE_PATH")
        return cls(
            storage_prefix=os.environ.get(
                "SECRETGATE_STORAGE_PREFIX", DEFAULT_STORAGE_PREFIX
            ),
            self_test_value=os.environ.get(
                "SECRETGATE_SELF_TEST_VALUE", DEFAULT_SELF_TEST_VALUE
            ),
            store_path=Path(store_path) if store_path else None,
        )
