# podshop/services/payment_service.py
from uuid import uuid4

import requests
from requests import RequestException

from podshop.utils.crypto import hmac_sha256, signatures_match
from podshop.utils.errors import ProviderUnavailable
from podshop.utils.logging import get_logger
from podshop.utils.settings import (
    RAZORPAY_API_URL,
    RAZORPAY_KEY_ID,
    RAZORPAY_KEY_SECRET,
    RAZORPAY_WEBHOOK_SECRET,
)

logger = get_logger(__name__)


class RazorpayGateway:
    """
    Bramka platnosci traktowana jako zewnetrzny serwis: tworzenie zamowienia
    platnosci i weryfikacja podpisow. Bez key_id dziala w trybie mock.
    """

    def __init__(
        self,
        key_id: str | None = RAZORPAY_KEY_ID,
        key_secret: str | None = RAZORPAY_KEY_SECRET,
        webhook_secret: str | None = RAZORPAY_WEBHOOK_SECRET,
        base_url: str = RAZORPAY_API_URL,
        timeout: float = 10,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def is_mock(self) -> bool:
        return not self.key_id

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict | None = None) -> dict:
        """amount w najmniejszej jednostce waluty (paisa)."""
        if self.is_mock:
            return {"id": f"order_mock_{uuid4().hex[:14]}", "amount": amount, "currency": currency}

        try:
            resp = requests.post(
                f"{self.base_url}/orders",
                auth=(self.key_id, self.key_secret),
                json={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes or {},
                    "payment_capture": 1,
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except (RequestException, ValueError) as e:
            logger.error(f"Razorpay order creation failed: {e}")
            raise ProviderUnavailable("Payment gateway unavailable, please try again") from e

    def verify_payment_signature(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret or not gateway_order_id:
            logger.error("Razorpay key secret not configured, cannot verify payment")
            return False
        body = f"{gateway_order_id}|{payment_id}".encode()
        return signatures_match(hmac_sha256(self.key_secret, body).hex(), signature)

    def verify_webhook_signature(self, raw_body: bytes, signature: str | None) -> bool:
        if not self.webhook_secret:
            return False
        return signatures_match(hmac_sha256(self.webhook_secret, raw_body).hex(), signature)

    @property
    def public_key(self) -> str | None:
        return self.key_id
