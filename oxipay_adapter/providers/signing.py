"""HMAC-SHA256 signing of Oxipay parameter sets.

Only ``x_`` prefixed keys take part. Keys are sorted by ordinal comparison
and concatenated as ``key + value`` with no separator before hashing, so
both ends compute the same digest regardless of field order.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Mapping

from oxipay_adapter.domain.errors import ConfigurationError

SIGNED_PREFIX = "x_"
SIGNATURE_FIELD = "x_signature"


def canonical_string(params: Mapping[str, str | None]) -> str:
    """Return the string that gets hashed for ``params``.

    The signature field itself is never part of its own input. Missing
    values are signed as empty strings.
    """
    keys = sorted(
        key for key in params if key.startswith(SIGNED_PREFIX) and key != SIGNATURE_FIELD
    )
    return "".join(f"{key}{params[key] or ''}" for key in keys)


def sign(params: Mapping[str, str | None], secret: bytes | str) -> str:
    """Return the lowercase hex HMAC-SHA256 signature of ``params``."""
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    if not key:
        raise ConfigurationError("Oxipay encryption key is not configured")
    payload = canonical_string(params).encode("utf-8")
    return hmac.new(key, payload, hashlib.sha256).hexdigest()


def verify(params: Mapping[str, str | None], secret: bytes | str, claimed_signature: str | None) -> bool:
    """Check ``claimed_signature`` against ``params`` in constant time."""
    if not claimed_signature:
        return False
    expected = sign(params, secret)
    claimed = claimed_signature.strip().lower().encode("utf-8")
    return hmac.compare_digest(expected.encode("ascii"), claimed)
