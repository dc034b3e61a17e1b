"""Chiffrement symétrique des contenus de versions.

AES-256-CBC avec padding PKCS7. La clé d'organisation (chaîne) est ramenée à 32 octets par
SHA-256. Chaque version reçoit un IV aléatoire de 16 octets, conservé avec l'enregistrement et
réutilisé pour chaque déchiffrement.

Wire format:
    ciphertext = AES-256-CBC(key=sha256(org_key), iv)(pkcs7(plaintext))
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from channelstore.core.constants import IV_SIZE

BLOCK_SIZE_BITS = 128


class DecryptionError(Exception):
    """Déchiffrement impossible (clé, IV ou données incohérents)."""


def _derive_key(org_key: str) -> bytes:
    return hashlib.sha256(org_key.encode("utf-8")).digest()


class ContentCipher:
    """Chiffre/déchiffre les contenus avec la clé courante d'une organisation.

    Example:
        >>> cipher = ContentCipher()
        >>> iv = cipher.new_iv()
        >>> data = cipher.encrypt(b"kind: ConfigMap", "org-key", iv)
        >>> cipher.decrypt(data, "org-key", iv)
        b'kind: ConfigMap'
    """

    @staticmethod
    def new_iv() -> bytes:
        """Génère un IV aléatoire neuf."""
        return secrets.token_bytes(IV_SIZE)

    @staticmethod
    def encode_iv(iv: bytes) -> str:
        return base64.b64encode(iv).decode("ascii")

    @staticmethod
    def decode_iv(iv_text: str) -> bytes:
        return base64.b64decode(iv_text)

    def encrypt(self, plaintext: bytes, org_key: str, iv: bytes) -> bytes:
        """Chiffre `plaintext` avec la clé et l'IV fournis."""
        if len(iv) != IV_SIZE:
            raise ValueError(f"IV must be {IV_SIZE} bytes")
        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(_derive_key(org_key)), modes.CBC(iv)).encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes, org_key: str, iv: bytes) -> bytes:
        """Déchiffre `ciphertext`; lève DecryptionError si le padding est incohérent."""
        if len(iv) != IV_SIZE:
            raise ValueError(f"IV must be {IV_SIZE} bytes")
        decryptor = Cipher(algorithms.AES(_derive_key(org_key)), modes.CBC(iv)).decryptor()
        try:
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            return unpadder.update(padded) + unpadder.finalize()
        except ValueError as err:
            # mauvaise clé (ex. après rotation) ou données corrompues
            raise DecryptionError("unable to decrypt content") from err
