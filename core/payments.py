import hashlib
import hmac
from typing import Optional


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    body = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: Optional[str], payment_id: Optional[str],
                             signature: Optional[str], secret: Optional[str]) -> bool:
    """Check a Razorpay checkout signature: HMAC-SHA256 of "order_id|payment_id"."""
    if not (order_id and payment_id and signature and secret):
        return False
    expected = payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)
