import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import status

from migration_gateway.core.errors import AuthenticationError

SIGNATURE_HEADER = "zitadel-signature"


@dataclass(frozen=True)
class SignatureHeader:
    timestamp: str
    signature: str


def parse_signature_header(header: Optional[str]) -> SignatureHeader:
    if not header:
        raise AuthenticationError("Missing signature", status.HTTP_400_BAD_REQUEST)

    elements = [item.strip() for item in header.split(",")]
    timestamp = next((item[2:] for item in elements if item.startswith("t=")), None)
    signature = next((item[3:] for item in elements if item.startswith("v1=")), None)
    if not timestamp or not signature:
        raise AuthenticationError("Invalid signature format", status.HTTP_400_BAD_REQUEST)
    return SignatureHeader(timestamp=timestamp, signature=signature)


def compute_signature(raw_body: bytes, timestamp: str, secret: str) -> str:
    signed_payload = timestamp.encode("utf-8") + b"." + raw_body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def signature_header_for(raw_body: bytes, secret: str, timestamp: Optional[str] = None) -> str:
    timestamp = timestamp or str(int(time.time()))
    return f"t={timestamp},v1={compute_signature(raw_body, timestamp, secret)}"


def _matches(parsed: SignatureHeader, raw_body: bytes, secret: str) -> bool:
    expected = compute_signature(raw_body, parsed.timestamp, secret)
    return hmac.compare_digest(expected.encode("utf-8"), parsed.signature.encode("utf-8"))


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: str) -> bool:
    if not secret:
        return False
    try:
        parsed = parse_signature_header(signature_header)
    except AuthenticationError:
        return False
    return _matches(parsed, raw_body, secret)


def _is_fresh(timestamp: str, tolerance_seconds: int, now: Optional[float]) -> bool:
    try:
        issued_at = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    return abs(current - issued_at) <= tolerance_seconds


def require_valid_signature(
    raw_body: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance_seconds: int = 0,
    now: Optional[float] = None,
) -> SignatureHeader:
    parsed = parse_signature_header(signature_header)
    if not secret:
        raise AuthenticationError("Signing key not configured")
    if not _matches(parsed, raw_body, secret):
        raise AuthenticationError("Invalid signature")
    if tolerance_seconds > 0 and not _is_fresh(parsed.timestamp, tolerance_seconds, now):
        raise AuthenticationError("Signature expired")
    return parsed
