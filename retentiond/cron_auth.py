"""
Bearer-token authorization for the scheduled cleanup trigger.
"""

import hmac
from typing import Optional


def verify_token(provided: str, expected: str) -> bool:
    """Timing-safe token comparison: length check, then constant-time compare."""
    provided_bytes = provided.encode("utf-8")
    expected_bytes = expected.encode("utf-8")
    if len(provided_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(provided_bytes, expected_bytes)


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[len("Bearer "):]


def is_authorized(auth_header: Optional[str], expected: Optional[str]) -> bool:
    """
    Check a request's Authorization header against the configured secret.

    A missing configured secret never authorizes anything.
    """
    if not expected:
        return False
    token = extract_bearer_token(auth_header)
    if token is None:
        return False
    return verify_token(token, expected)
