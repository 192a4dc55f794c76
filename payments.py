"""
Payment gateway integration through the Razorpay SDK.
"""
import secrets

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from config import Settings
from errors import InternalError
from logger import get_logger

logger = get_logger("payments")

CURRENCY = "INR"


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


class RazorpayGateway:
    """Wraps the two gateway calls the storefront needs."""

    def __init__(self, settings: Settings):
        self.configured = bool(settings.razorpay_key_id and settings.razorpay_key_secret)
        self.client = razorpay.Client(auth=(settings.razorpay_key_id, settings.razorpay_key_secret))

    def create_order(self, amount: float) -> dict:
        """Create a gateway order for ``amount`` rupees."""
        if not self.configured:
            raise InternalError("Failed to create order", error="Payment gateway is not configured")
        payload = {
            "amount": to_paise(amount),
            "currency": CURRENCY,
            "receipt": f"order_rcptid_{secrets.token_hex(4)}",
        }
        try:
            order = self.client.order.create(data=payload)
        except (BadRequestError, GatewayError, ServerError, requests.RequestException) as exc:
            logger.error("Error creating gateway order: %s", exc)
            raise InternalError("Failed to create order", error=str(exc))
        logger.info("Created gateway order %s for %s paise", order.get("id"), payload["amount"])
        return {"id": order["id"], "amount": order["amount"], "currency": order["currency"]}

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        if not self.configured:
            return False
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature or "",
            })
        except SignatureVerificationError:
            logger.warning("Signature mismatch for gateway order %s", order_id)
            return False
        return True
