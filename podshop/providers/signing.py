# podshop/providers/signing.py
import base64

from podshop.utils.crypto import hmac_sha256, signatures_match


def verify_hex_signature(secret: str | None, raw_body: bytes, signature: str | None) -> bool:
    if not secret:
        return False
    return signatures_match(hmac_sha256(secret, raw_body).hex(), signature)


def verify_base64_signature(secret: str | None, raw_body: bytes, signature: str | None) -> bool:
    if not secret:
        return False
    expected = base64.b64encode(hmac_sha256(secret, raw_body)).decode()
    return signatures_match(expected, signature)


def verify_prefixed_signature(secret: str | None, raw_body: bytes, signature: str | None) -> bool:
    # format "sha256=<hex>"
    if not secret:
        return False
    return signatures_match(f"sha256={hmac_sha256(secret, raw_body).hex()}", signature)
