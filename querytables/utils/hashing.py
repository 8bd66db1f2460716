"""Content-addressed short keys for surrogate-key purging."""

import base64
import hashlib
from typing import Final

__all__ = ("SHORT_KEY_LENGTH", "short_hash_key")

SHORT_KEY_LENGTH: Final = 6


def short_hash_key(target: str, length: int = SHORT_KEY_LENGTH) -> str:
    """Return the first ``length`` characters of the base64 SHA-256 digest of ``target``.

    Standard base64 alphabet, so ``+`` and ``/`` can appear in the result.
    Six characters carry about 36 bits; collisions are accepted, not handled.

    Args:
        target: Text to hash, encoded as UTF-8.
        length: Number of base64 characters to keep.

    Returns:
        The truncated base64 digest.
    """
    digest = hashlib.sha256(target.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")[:length]
