from __future__ import annotations

import hashlib


def fingerprint_token(token: str, prefix_length: int = 12) -> str:
    """Short, stable identifier for a secret token, safe to put in log lines.

    The token is hashed with SHA3-256 and only the leading hex characters are
    kept, so two log lines mentioning the same installation token can be
    correlated without the token itself ever being written out.

    Example:
        >>> len(fingerprint_token("ghs_1234567890abcdef", prefix_length=8))
        8
    """
    digest = hashlib.sha3_256(token.encode("utf-8")).hexdigest()
    return digest[:prefix_length]


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Masked preview of a secret for display (e.g., in `dependabot-prs config`)."""
    if not value:
        return "-"
    if len(value) <= visible:
        return "***"
    return f"{value[:visible]}... (length: {len(value)})"
