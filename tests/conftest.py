import asyncio
import base64
import hashlib
import os

import orjson
import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from secretgate.store import MemoryStore
from secretgate.vault import SecretService


IDENTITY = "alice@example.com"
PASSPHRASE = "correct-horse-battery"


class FakePrompt:
    """Scripted passphrase prompt that records every invocation."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls: list[str] = []

    async def __call__(self, identity: str):
        self.calls.append(identity)
        await asyncio.sleep(0)
        answer = self.answers.pop(0) if self.answers else None
        if isinstance(answer, BaseException):
            raise answer
        return answer


def legacy_record(value: str, identity: str, passphrase: str, iv_field: bytes = None) -> str:
    """Build a record the way the pre-salt writer did.

    salt (8 words) | iv (4 words) | ciphertext, base64 encoded in one field.
    Uses hashlib directly so it does not share code with the vault.
    """
    combined = f"{identity}:{passphrase}".encode("utf-8")
    master_hex = hashlib.pbkdf2_hmac(
        "sha256", combined, identity.encode("utf-8"), 10000, 32
    ).hex()
    salt = os.urandom(32)
    iv = os.urandom(16)
    key = hashlib.pbkdf2_hmac("sha256", master_hex.encode("ascii"), salt, 10000, 32)
    padder = padding.PKCS7(128).padder()
    padded = padder.update(value.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return orjson.dumps({
        "encrypted": base64.b64encode(salt + iv + ciphertext).decode("ascii"),
        "iv": base64.b64encode(iv_field or iv).decode("ascii"),
    }).decode("utf-8")


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def prompt():
    return FakePrompt(PASSPHRASE)


@pytest.fixture
def service(store, prompt):
    return SecretService(store, prompt)
