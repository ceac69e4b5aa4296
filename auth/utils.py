"""
Utility functions for the auth module.
"""

import hashlib
import hmac
import uuid


def sign(secret: str, owner_id: str) -> str:
    """Return the hex HMAC-SHA256 of `owner_id` under `secret`."""
    return hmac.new(secret.encode("utf-8"), owner_id.encode("utf-8"), hashlib.sha256).hexdigest()


def verify(secret: str, owner_id: str, signature: str) -> bool:
    """Constant-time check that `signature` matches `owner_id`.

    Compared as bytes: the signature comes from the client and may hold
    non-ASCII characters.
    """
    expected = sign(secret, owner_id).encode("ascii")
    return hmac.compare_digest(expected, signature.encode("utf-8", "surrogateescape"))


def new_owner_id() -> str:
    """Random opaque owner identifier."""
    return str(uuid.uuid4())
