"""AES-256-GCM encryption of private keys under a passphrase-derived key.

The symmetric key is derived once with PBKDF2-HMAC-SHA512 and held in memory
for the life of the process. Parameters are fixed so existing
wallet files keep decrypting.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from mint_relay.errors import AuthenticationError, ValidationError
from mint_relay.models import CipherBlob

DEFAULT_SALT = b"monad-mint-salt"
KDF_ITERATIONS = 100_000
KEY_BYTES = 32
IV_BYTES = 16
TAG_BYTES = 16


def derive_key(
    passphrase: str,
    salt: bytes = DEFAULT_SALT,
    iterations: int = KDF_ITERATIONS,
) -> bytes:
    """Derive a 256-bit key from the operator passphrase."""
    if not passphrase:
        raise ValidationError("A master passphrase is required to derive the wallet key.")
    if iterations < KDF_ITERATIONS:
        raise ValidationError(f"KDF iterations must be at least {KDF_ITERATIONS}.")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_BYTES,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt(plaintext: str, key: bytes) -> CipherBlob:
    """Encrypt *plaintext* with a fresh random IV."""
    iv = os.urandom(IV_BYTES)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag to the ciphertext.
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    return CipherBlob(iv=iv.hex(), ciphertext=ciphertext.hex(), auth_tag=tag.hex())


def decrypt(blob: CipherBlob, key: bytes) -> str:
    """Decrypt *blob*, raising :class:`AuthenticationError` on any mismatch."""
    try:
        iv = bytes.fromhex(blob.iv)
        ciphertext = bytes.fromhex(blob.ciphertext)
        tag = bytes.fromhex(blob.auth_tag)
    except ValueError as exc:
        raise AuthenticationError(f"Malformed cipher blob: {exc}") from exc

    if len(iv) != IV_BYTES or len(tag) != TAG_BYTES:
        raise AuthenticationError("Malformed cipher blob: bad IV or tag length")

    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as exc:
        raise AuthenticationError(
            "Authentication tag mismatch; the blob was tampered with or the "
            "master passphrase is wrong."
        ) from exc
    return plaintext.decode("utf-8")


class SecretCipher:
    """Holds the derived key and encrypts/decrypts individual private keys."""

    def __init__(
        self,
        passphrase: str,
        salt: bytes = DEFAULT_SALT,
        iterations: int = KDF_ITERATIONS,
    ) -> None:
        self._key = derive_key(passphrase, salt, iterations)

    def encrypt(self, plaintext: str) -> CipherBlob:
        return encrypt(plaintext, self._key)

    def decrypt(self, blob: CipherBlob) -> str:
        return decrypt(blob, self._key)

    def __repr__(self) -> str:
        return "SecretCipher(<key hidden>)"
