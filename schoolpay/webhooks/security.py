import hashlib
import hmac


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()


def verify_signature(payload: bytes, signature, secret) -> bool:
    """Constant-time comparison of the header signature with our HMAC."""
    if not secret or not signature:
        return False
    computed = compute_signature(payload, secret)
    provided = signature.strip().lower().encode("utf-8", "replace")
    return hmac.compare_digest(computed.encode(), provided)
