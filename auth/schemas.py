"""
Pydantic schemas for the auth module.
"""

from typing import Optional

from pydantic import BaseModel

from .config import COOKIE_MAX_AGE, COOKIE_NAME, COOKIE_PATH


class OwnerToken(BaseModel):
    """Owner id and its signature, as carried in the cookie (`ownerId:digest`)."""
    owner_id: str
    signature: str

    @property
    def cookie_value(self) -> str:
        return f"{self.owner_id}:{self.signature}"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["OwnerToken"]:
        """Split a cookie value into exactly two non-empty parts, else None."""
        if not value:
            return None
        parts = value.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return None
        return cls(owner_id=parts[0], signature=parts[1])


class IssuedCookie(BaseModel):
    """Directive for the transport layer to set a freshly minted cookie."""
    value: str
    name: str = COOKIE_NAME
    max_age: int = COOKIE_MAX_AGE
    path: str = COOKIE_PATH
    httponly: bool = True
