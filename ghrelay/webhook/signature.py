"""HMAC-SHA256 verification of GitHub webhook deliveries."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_PREFIX = "sha256="


def compute_signature(secret: str, body: bytes) -> str:
    """Return the ``sha256=<hex>`` header value GitHub would send for ``body``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(secret: str, body: bytes, header: str | None) -> bool:
    """Return whether ``header`` carries a valid signature of ``body``.

    The comparison is constant-time. A missing header, a header without the
    ``sha256=`` prefix, or non-hex digits all fail verification.
    """
    if not header or not header.startswith(SIGNATURE_PREFIX):
        return False
    try:
        received = bytes.fromhex(header.removeprefix(SIGNATURE_PREFIX))
    except ValueError:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return hmac.compare_digest(received, expected)


__all__ = ["SIGNATURE_PREFIX", "compute_signature", "verify_signature"]
