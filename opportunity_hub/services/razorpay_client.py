"""
Razorpay Client

Talks to the Razorpay Orders REST API with HTTP basic auth
(key id / key secret). Amounts are in the smallest currency unit:
300 rupees is 30000 paise.

Checkout happens in the browser; the server only creates the order and
later checks the signature Razorpay hands back to the client.
"""

import hashlib
import hmac
import logging
import time
from typing import Optional

import requests

from opportunity_hub.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

REQUEST_TIMEOUT = 15  # seconds


class PaymentGatewayError(Exception):
    """Order could not be created (missing keys, network or API error)."""


class RazorpayClient:
    """
    Thin wrapper over the endpoints the toolkit checkout needs.
    """

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None,
                 base_url: Optional[str] = None):
        self.key_id = key_id or settings.razorpay_key_id
        self.key_secret = key_secret or settings.razorpay_key_secret
        self.base_url = (base_url or settings.razorpay_base_url).rstrip("/")

    def _require_keys(self) -> None:
        missing = [
            name for name, value in (
                ("RAZORPAY_KEY_ID", self.key_id), ("RAZORPAY_KEY_SECRET", self.key_secret)
            ) if not value
        ]
        if missing:
            raise PaymentGatewayError(f"Missing required environment variables: {' '.join(missing)}")

    def create_order(self, amount: int, receipt: str, currency: str = "INR") -> dict:
        """
        Create an order. Returns the Razorpay order ({"id", "amount", "currency", ...}).
        """
        self._require_keys()
        try:
            response = requests.post(
                f"{self.base_url}/orders",
                json={"amount": amount, "currency": currency, "receipt": receipt},
                auth=(self.key_id, self.key_secret),
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Razorpay order creation failed: %s", e)
            raise PaymentGatewayError("Failed to create payment order") from e
        return response.json()

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """HMAC-SHA256 of "{order_id}|{payment_id}" keyed with the secret."""
        self._require_keys()
        return verify_payment_signature(order_id, payment_id, signature, self.key_secret)


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    expected = hmac.new(
        secret.encode(), f"{order_id}|{payment_id}".encode(), hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected.encode(), signature.encode())


def build_receipt(toolkit_id: str) -> str:
    """Razorpay caps receipts at 40 chars."""
    return f"tk_{toolkit_id[-8:]}_{str(int(time.time() * 1000))[-8:]}"


# Global instance
_razorpay_client: Optional[RazorpayClient] = None


def get_razorpay_client() -> RazorpayClient:
    """Get or create Razorpay client (singleton pattern)"""
    global _razorpay_client
    if _razorpay_client is None:
        _razorpay_client = RazorpayClient()
    return _razorpay_client
