"""Symmetric encryption for detected PHI values.

Detection never encrypts; callers that persist raw PHI values can pass the
findings through ``FieldEncryptor.encrypt_fields`` first.
"""

from dataclasses import replace

from cryptography.fernet import Fernet, InvalidToken

from vigilance.compliance.models import PHIField

DECRYPTION_FAILED = "[DECRYPTION_FAILED]"


class FieldEncryptor:
    """Fernet (AES-128-CBC + HMAC-SHA256) wrapper for PHI strings."""

    def __init__(self, key: str | bytes) -> None:
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, data: str) -> str:
        return self._fernet.encrypt(data.encode("utf-8")).decode("ascii")

    def decrypt(self, encrypted_data: str) -> str:
        """Decrypt a token; a corrupt or foreign token yields ``[DECRYPTION_FAILED]``."""
        try:
            return self._fernet.decrypt(encrypted_data.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError, ValueError):
            return DECRYPTION_FAILED

    def encrypt_fields(self, fields: list[PHIField]) -> list[PHIField]:
        return [
            f if f.is_encrypted else replace(f, value=self.encrypt(f.value), is_encrypted=True)
            for f in fields
        ]
