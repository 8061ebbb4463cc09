"""
Shared utilities for API routes.
"""

import logging
import secrets
from typing import Mapping, Optional

from saytype_bridge.api.errors import Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(auth_header: Optional[str]) -> str:
    """
    Extract the bearer token from an Authorization header.

    A missing header or a header without the literal "Bearer " prefix yields
    an empty token.
    """
    if auth_header and auth_header.startswith(BEARER_PREFIX):
        return auth_header[len(BEARER_PREFIX) :]
    return ""


def tokens_match(presented: str, expected: str) -> bool:
    """Exact string equality, evaluated in constant time."""
    return secrets.compare_digest(presented.encode("utf-8"), expected.encode("utf-8"))


def verify_token(headers: Mapping[str, str], expected_token: str) -> None:
    """
    Check the request's bearer token against the configured secret.

    Raises:
        Unauthorized: On any mismatch. The error never says whether the
            header was missing or the token was wrong.
    """
    token = extract_bearer_token(headers.get("authorization"))
    if not tokens_match(token, expected_token):
        logger.warning(
            "Rejected request with missing or invalid token",
            extra={"header_present": "authorization" in headers},
        )
        raise Unauthorized()


def sanitize_for_log(value: str, max_length: int = 200) -> str:
    """
    Sanitize user input before logging to prevent log injection.

    Args:
        value: The string to sanitize
        max_length: Maximum length before truncation (default: 200)

    Returns:
        Sanitized string safe for logging
    """
    if not value:
        return value

    # One request, one log line
    sanitized = value.replace("\n", "\\n").replace("\r", "\\r")

    # Control characters other than space and tab are dropped
    sanitized = "".join(c for c in sanitized if c.isprintable() or c in " \t")

    # Long format tags are cut short
    if len(sanitized) > max_length:
        return sanitized[:max_length] + "..."

    return sanitized
