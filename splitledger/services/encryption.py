"""
Field Encryption for Member Contact Details

Phone numbers are encrypted before they reach the document store and
decrypted best-effort on the way out. Values written before encryption
was enabled (or with another key) come back unchanged rather than
failing the whole member listing.
"""

from abc import ABC, abstractmethod
from typing import Union

from cryptography.fernet import Fernet, InvalidToken


class EncryptionService(ABC):
    """Opaque string transform."""

    @abstractmethod
    def encrypt_value(self, plain: str) -> str:
        pass

    @abstractmethod
    def decrypt_value(self, opaque: str) -> str:
        """Raises ValueError when the value cannot be decrypted."""
        pass


class FernetEncryptionService(EncryptionService):
    """Symmetric encryption with a single Fernet key."""

    def __init__(self, key: Union[str, bytes]):
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode()

    def encrypt_value(self, plain: str) -> str:
        return self._fernet.encrypt(plain.encode()).decode()

    def decrypt_value(self, opaque: str) -> str:
        try:
            return self._fernet.decrypt(opaque.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Value is not a valid token for this key") from e
