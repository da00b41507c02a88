# podshop/utils/crypto.py
import base64
import hashlib
import hmac

from cryptography.fernet import Fernet, InvalidToken

from podshop.utils.errors import InternalError
from podshop.utils.logging import get_logger

logger = get_logger(__name__)


class SettingsCipher:
    """Symetryczne szyfrowanie wartosci ustawien (klucze API providerow)."""

    def __init__(self, secret: str):
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())
        self._fernet = Fernet(key)

    def encrypt(self, text: str) -> str:
        return self._fernet.encrypt(text.encode()).decode()

    def decrypt(self, token: str) -> str:
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            logger.error("Failed to decrypt setting value, wrong ENCRYPTION_KEY?")
            raise InternalError("Failed to decrypt stored setting")


def hmac_sha256(secret: str, body: bytes) -> bytes:
    return hmac.new(secret.encode(), body, hashlib.sha256).digest()


def signatures_match(expected: str, received: str | None) -> bool:
    if not received:
        return False
    return hmac.compare_digest(expected, received.strip())
