"""Content fingerprints for secret values.

Fingerprints are only ever compared for equality inside the process.  They
are never logged or exported, so a digest of credential material cannot leak
through an observability channel.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping


def fingerprint(value: bytes) -> str:
    """Return the hex SHA-256 digest of *value*."""
    return hashlib.sha256(value).hexdigest()


def fingerprint_data(data: Mapping[str, bytes]) -> dict[str, str]:
    """Fingerprint every value of a secret's data mapping."""
    return {key: fingerprint(value) for key, value in data.items()}
