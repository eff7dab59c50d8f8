"""
Vault Crypto Core — Key derivation and AES-256-CBC encryption/decryption.

Two-stage derivation for every encrypted record:
- Master key material: PBKDF2("{identity}:{passphrase}", identity) → 32 bytes
- Per-record key: PBKDF2(hex(master), record_salt) → 32 bytes (the AES key)

Both stages use PBKDF2-HMAC-SHA256 with 10000 iterations. These parameters
are part of the stored format: records written with other values cannot be
read back.

Security Note:
    Never log plaintext, passphrases or key material.
    Salts and IVs are drawn from os.urandom on every encryption.
"""
import os
import logging

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .exceptions import InvalidInput, DecryptionFailed

logger = logging.getLogger("secretgate.vault")

PBKDF2_ITERATIONS = 10000
KEY_LENGTH = 32  # AES-256
SALT_SIZE = 32  # 8 words of 32 bits
IV_SIZE = 16  # 4 words of 32 bits
BLOCK_SIZE = 16
PASSWORD_SALT_SIZE = 16


def _pbkdf2(salt: bytes) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_master_key_material(identity: str, passphrase: str) -> bytes:
    """Derive the per-user master key material.

    The identity is mixed into both the password input and the salt, so two
    accounts sharing a passphrase never derive the same master key.

    Args:
        identity: Account identity (user email).
        passphrase: User-held encryption passphrase.

    Returns:
        32 bytes of master key material.

    Raises:
        InvalidInput: If identity or passphrase is empty.
    """
    if not identity or not passphrase:
        raise InvalidInput("Identity and encryption passphrase are required")
    combined = f"{identity}:{passphrase}".encode("utf-8")
    return _pbkdf2(identity.encode("utf-8")).derive(combined)


def derive_per_record_key(master_key_material: bytes, salt: bytes) -> bytes:
    """Derive the AES key for one record from master material and its salt.

    The master material enters this stage as its lowercase hex string.

    Args:
        master_key_material: Output of ``derive_master_key_material``.
        salt: 32-byte record salt.

    Returns:
        32-byte AES-256 key.

    Raises:
        InvalidInput: If the master material or salt has the wrong length.
    """
    if len(master_key_material) != KEY_LENGTH:
        raise InvalidInput(
            f"Master key material must be {KEY_LENGTH} bytes, "
            f"got {len(master_key_material)}"
        )
    if len(salt) != SALT_SIZE:
        raise InvalidInput(
            f"Record salt must be {SALT_SIZE} bytes, got {len(salt)}"
        )
    password = master_key_material.hex().encode("ascii")
    return _pbkdf2(salt).derive(password)


def generate_salt() -> bytes:
    """Return a fresh random 32-byte record salt."""
    return os.urandom(SALT_SIZE)


def generate_iv() -> bytes:
    """Return a fresh random 16-byte IV."""
    return os.urandom(IV_SIZE)


# ---------------------------------------------------------------------------
# AES-256-CBC
# ---------------------------------------------------------------------------

def encrypt(plaintext: str, key: bytes, iv: bytes) -> bytes:
    """Encrypt a string with AES-256-CBC and PKCS#7 padding.

    Args:
        plaintext: Text to encrypt (UTF-8 encoded before padding).
        key: 32-byte AES key.
        iv: 16-byte initialization vector.

    Returns:
        Raw ciphertext bytes.

    Raises:
        InvalidInput: If key or IV has the wrong length.
    """
    if len(iv) != IV_SIZE:
        raise InvalidInput(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
    if len(key) != KEY_LENGTH:
        raise InvalidInput(f"Key must be {KEY_LENGTH} bytes, got {len(key)}")
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: bytes, iv: bytes) -> str:
    """Decrypt AES-256-CBC ciphertext back to a string.

    Every structural or cryptographic failure is reported as the same
    ``DecryptionFailed`` error, without a cause chain.

    Args:
        ciphertext: Raw ciphertext bytes.
        key: 32-byte AES key.
        iv: 16-byte initialization vector.

    Returns:
        Decrypted text.

    Raises:
        DecryptionFailed: On any failure.
    """
    if (
        len(iv) != IV_SIZE
        or len(key) != KEY_LENGTH
        or not ciphertext
        or len(ciphertext) % BLOCK_SIZE
    ):
        raise DecryptionFailed()
    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
        result = (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        result = None
    if not result:
        raise DecryptionFailed()
    return result


# ---------------------------------------------------------------------------
# Password hashing and tokens
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password for storage as ``"<salt hex>:<hash hex>"``."""
    if not password:
        raise InvalidInput("Password cannot be empty")
    salt = os.urandom(PASSWORD_SALT_SIZE)
    digest = _pbkdf2(salt).derive(password.encode("utf-8"))
    return f"{salt.hex()}:{digest.hex()}"


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a value produced by ``hash_password``.

    Comparison runs in constant time. Malformed hashes never verify.
    """
    try:
        salt_hex, digest_hex = hashed.split(":")
        salt = bytes.fromhex(salt_hex)
        digest = bytes.fromhex(digest_hex)
    except (AttributeError, ValueError):
        logger.debug("Password verification against malformed hash")
        return False
    if not salt or len(digest) != KEY_LENGTH:
        return False
    try:
        _pbkdf2(salt).verify(password.encode("utf-8"), digest)
    except InvalidKey:
        return False
    return True


def generate_token(length: int = 32) -> str:
    """Return a hex token built from ``length`` random bytes."""
    if length <= 0:
        raise InvalidInput("Token length must be positive")
    return os.urandom(length).hex()
