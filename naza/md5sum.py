"""MD5 digests as lower-case hex strings."""

import hashlib

__all__ = ["md5"]


def md5(b) -> str:
    """Return the 32-character lower-case hex MD5 digest of `b` (None counts as empty)."""
    return hashlib.md5(bytes(b) if b is not None else b"").hexdigest()