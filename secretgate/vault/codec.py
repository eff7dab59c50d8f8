"""
Vault Record Codec — Serialization of encrypted records.

Current format (read and write)::

    {"encrypted": "<b64 ciphertext>", "iv": "<b64 16B>", "salt": "<b64 32B>"}

Legacy format (read only)::

    {"encrypted": "<b64 salt|iv|ciphertext>", "iv": "<b64>"}

Legacy blobs are sliced positionally: the first 8 32-bit words are the salt,
the next 4 words the IV, and the remainder the ciphertext. The top-level
``iv`` field of a legacy record is not used for decryption. A record whose
``salt`` is absent or not a string is read as legacy.
"""
import base64
import binascii
from typing import Union

import orjson
from pydantic import BaseModel, ValidationError, field_validator

from .crypto import SALT_SIZE, IV_SIZE, BLOCK_SIZE
from .exceptions import MalformedRecord, DecryptionFailed


class EncryptedRecord(BaseModel):
    """One encrypted secret value in the current format."""

    ciphertext: bytes
    iv: bytes
    salt: bytes

    model_config = {"frozen": True}

    @field_validator("iv")
    @classmethod
    def validate_iv(cls, v: bytes) -> bytes:
        if len(v) != IV_SIZE:
            raise ValueError(f"iv must be {IV_SIZE} bytes, got {len(v)}")
        return v

    @field_validator("salt")
    @classmethod
    def validate_salt(cls, v: bytes) -> bytes:
        if len(v) != SALT_SIZE:
            raise ValueError(f"salt must be {SALT_SIZE} bytes, got {len(v)}")
        return v


class LegacyEncryptedRecord(BaseModel):
    """A record written before the salt field existed."""

    blob: bytes
    iv: bytes

    model_config = {"frozen": True}

    def unpack(self) -> EncryptedRecord:
        """Slice the combined blob into salt, IV and ciphertext.

        Raises:
            DecryptionFailed: If the blob cannot hold a salt, an IV and at
                least one cipher block.
        """
        header = SALT_SIZE + IV_SIZE
        if len(self.blob) < header + BLOCK_SIZE:
            raise DecryptionFailed()
        return EncryptedRecord(
            salt=self.blob[:SALT_SIZE],
            iv=self.blob[SALT_SIZE:header],
            ciphertext=self.blob[header:],
        )


AnyRecord = Union[EncryptedRecord, LegacyEncryptedRecord]


def _b64(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _unb64(data: dict, field: str) -> bytes:
    value = data[field]
    if not isinstance(value, str):
        raise MalformedRecord(f"Field '{field}' must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedRecord(f"Field '{field}' is not valid base64") from err


def serialize(record: EncryptedRecord) -> str:
    """Serialize a record to its JSON storage form.

    Only the current format is ever written.
    """
    return orjson.dumps({
        "encrypted": _b64(record.ciphertext),
        "iv": _b64(record.iv),
        "salt": _b64(record.salt),
    }).decode("utf-8")


def parse(raw: str) -> AnyRecord:
    """Parse a stored value into a current or legacy record.

    Args:
        raw: JSON string produced by ``serialize`` (or by the legacy writer).

    Returns:
        ``EncryptedRecord`` or ``LegacyEncryptedRecord``.

    Raises:
        MalformedRecord: If the value matches neither format.
    """
    try:
        data = orjson.loads(raw)
    except (orjson.JSONDecodeError, TypeError) as err:
        raise MalformedRecord("Encrypted value is not valid JSON") from err
    if not isinstance(data, dict):
        raise MalformedRecord("Encrypted value must be a JSON object")
    try:
        # a salt that is missing or not a string means the pre-salt writer
        has_payload = "encrypted" in data and "iv" in data
        if has_payload and isinstance(data.get("salt"), str):
            return EncryptedRecord(
                ciphertext=_unb64(data, "encrypted"),
                iv=_unb64(data, "iv"),
                salt=_unb64(data, "salt"),
            )
        if has_payload:
            return LegacyEncryptedRecord(
                blob=_unb64(data, "encrypted"),
                iv=_unb64(data, "iv"),
            )
    except ValidationError as err:
        raise MalformedRecord("Invalid encrypted data format") from err
    raise MalformedRecord("Invalid encrypted data format")


def is_encrypted_record(raw: str) -> bool:
    """Return True if ``raw`` is a record in the current three-field format."""
    try:
        return isinstance(parse(raw), EncryptedRecord)
    except MalformedRecord:
        return False
