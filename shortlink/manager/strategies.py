"""
Short-code generation for shortlink.

SHA256Strategy:
    SHA-256(origin) -> first 16 bytes -> URL-safe base64 without padding
    -> lower-cased. Always 22 characters from [a-z0-9_-].

The code is a pure function of the origin string, so the same origin
always yields the same code and duplicate checks need no lookup. Distinct
origins colliding on 16 bytes is treated as out of scope; storage raises
CodeCollisionError rather than overwrite if it ever happens.
"""

import base64
import hashlib
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

CODE_BYTES = 16
CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,22}$")


class BaseStrategy(ABC):
    """Abstract base for code generation strategies."""

    @abstractmethod
    def generate(self, origin: str) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class SHA256Strategy(BaseStrategy):
    """Deterministic SHA-256 -> truncate -> url-safe base64 -> lower strategy."""

    size: int = CODE_BYTES

    def generate(self, origin: str) -> str:
        digest = hashlib.sha256(origin.encode("utf-8")).digest()[: self.size]
        encoded = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
        return encoded.lower()


_default = SHA256Strategy()


def generate_code(origin: str) -> str:
    """Facade used by the rest of the app."""
    return _default.generate(origin)


def is_valid_code(code: str) -> bool:
    """True if `code` has the shape of a short code (6-22 url-safe chars)."""
    return bool(CODE_PATTERN.match(code or ""))
