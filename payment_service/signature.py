import hashlib
import hmac
from typing import Optional

from .errors import ConfigurationError, SignatureInvalid


class SignatureVerifier:
    """
    Authenticates gateway callbacks with HMAC-SHA256 over a shared secret.

    The digest is always computed over the bytes exactly as they arrived.
    Never hand this a re-serialized JSON body: key order and whitespace would
    differ from what the gateway signed.
    """

    def __init__(self, secret: Optional[str]):
        if not secret:
            raise ConfigurationError("Gateway secret is not configured")
        self._key = secret.encode("utf-8")

    def _digest(self, message: bytes) -> bytes:
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def _compare(self, message: bytes, signature: Optional[str]) -> bool:
        if not signature:
            raise SignatureInvalid("Missing signature")
        try:
            expected = bytes.fromhex(signature.strip())
        except ValueError:
            raise SignatureInvalid("Signature is not valid hex")
        if not hmac.compare_digest(self._digest(message), expected):
            raise SignatureInvalid("Invalid signature")
        return True

    def verify(self, raw_body: bytes, signature: Optional[str]) -> bool:
        """Returns True for an authentic webhook body, raises SignatureInvalid otherwise."""
        return self._compare(raw_body, signature)

    def verify_checkout(self, order_id: str, payment_id: str, signature: Optional[str]) -> bool:
        """
        Checks the signature the checkout widget hands back to the browser.
        The gateway signs "<order_id>|<payment_id>" with the key secret.
        """
        return self._compare(f"{order_id}|{payment_id}".encode("utf-8"), signature)

    def sign(self, message: bytes) -> str:
        return self._digest(message).hex()
