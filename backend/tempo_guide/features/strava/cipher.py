"""
Token encryption for the token vault.

Provider tokens are encrypted at rest with Fernet (AES-128-CBC + HMAC-SHA256)
using a server-held key. encode/decode is the only interface the vault
relies on.
"""

from cryptography.fernet import Fernet, InvalidToken

from tempo_guide.shared.errors import PersistenceError


class TokenCipher:
    """
    Reversible, authenticated token encoding.

    Usage:
        cipher = TokenCipher(settings.token_encryption_key)
        stored = cipher.encode(access_token)
        access_token = cipher.decode(stored)
    """

    def __init__(self, key: str | bytes):
        if not key:
            raise ValueError("Token encryption key is not configured")
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        """Create a new random key (base64, suitable for TOKEN_ENCRYPTION_KEY)."""
        return Fernet.generate_key().decode()

    def encode(self, token: str) -> str:
        return self._fernet.encrypt(token.encode("utf-8")).decode("ascii")

    def decode(self, encoded: str) -> str:
        """
        Decrypt a stored token.

        Raises:
            PersistenceError: If the value was tampered with or encrypted
                with a different key
        """
        try:
            return self._fernet.decrypt(encoded.encode("ascii")).decode("utf-8")
        except (InvalidToken, ValueError) as e:
            raise PersistenceError("Stored Strava token could not be decrypted") from e
