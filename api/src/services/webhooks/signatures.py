"""
Webhook signature helpers.

Pure functions used on both sides of the webhook boundary:
- Inbound: verify platform signatures over the exact raw request bytes
- Inbound: answer Twitter CRC challenges
- Outbound: sign delivery bodies with an endpoint's secret

Every comparison goes through hmac.compare_digest so a mismatch takes the
same time regardless of where the first differing character is.
"""

import base64
import hashlib
import hmac

SHA256_PREFIX = "sha256="


def _hmac_sha256(key: str | bytes, message: bytes) -> bytes:
    if isinstance(key, str):
        key = key.encode("utf-8")
    return hmac.new(key, message, hashlib.sha256).digest()


def _strip_prefix(signature: str, prefix: str) -> str:
    if prefix and signature.startswith(prefix):
        return signature[len(prefix) :]
    return signature


def sign_hmac_sha256(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 of a body."""
    return _hmac_sha256(secret, body).hex()


def verify_hmac_sha256(
    body: bytes,
    secret: str | None,
    signature: str | None,
    prefix: str = "",
) -> bool:
    """
    Verify a hex HMAC-SHA256 signature (Meta-family X-Hub-Signature-256).

    Args:
        body: Raw request body bytes, exactly as received.
        secret: HMAC secret. A missing secret never verifies.
        signature: Signature from request header.
        prefix: Optional prefix in signature (e.g., 'sha256=').

    Returns:
        True if signature is valid.
    """
    if not signature or not secret:
        return False

    provided = _strip_prefix(signature, prefix)
    expected = sign_hmac_sha256(body, secret)

    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def verify_base64_hmac_sha256(
    body: bytes,
    secret: str | None,
    signature: str | None,
    prefix: str = SHA256_PREFIX,
) -> bool:
    """
    Verify a base64 HMAC-SHA256 signature (X-Twitter-Webhooks-Signature).

    Compared byte for byte like the hex form.
    """
    if not signature or not secret:
        return False

    provided = _strip_prefix(signature, prefix)
    expected = base64.b64encode(_hmac_sha256(secret, body)).decode("ascii")

    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def crc_response_token(crc_token: str, consumer_secret: str) -> str:
    """
    Answer a Twitter CRC challenge.

    Returns:
        "sha256=" + base64(HMAC_SHA256(key=consumer_secret, msg=crc_token))
    """
    digest = _hmac_sha256(consumer_secret, crc_token.encode("utf-8"))
    return SHA256_PREFIX + base64.b64encode(digest).decode("ascii")


def tokens_match(expected: str | None, provided: str | None) -> bool:
    """Constant-time comparison for pre-shared verify tokens."""
    if not expected or provided is None:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8"))
