"""
Core identity logic.

Owners are anonymous: an owner id is a random UUID, signed with a
process-wide secret and handed to the client as the `auth_token` cookie
(`ownerId:hexHMAC`). Nothing is stored server-side; every request
re-validates the signature.

A cookie that is missing, does not split into exactly two parts, or whose
signature does not match is treated as absent.
"""

from typing import Mapping, Optional, Tuple

from .config import COOKIE_NAME
from .schemas import IssuedCookie, OwnerToken
from .utils import new_owner_id, sign, verify


class IdentityService:
    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("identity secret must not be empty")
        self._secret = secret

    def _owner_from(self, cookies: Mapping[str, str]) -> Optional[str]:
        token = OwnerToken.parse(cookies.get(COOKIE_NAME))
        if token is None or not verify(self._secret, token.owner_id, token.signature):
            return None
        return token.owner_id

    def sign_cookie_value(self, owner_id: str) -> str:
        """Return a correctly signed cookie value for `owner_id`."""
        return OwnerToken(owner_id=owner_id, signature=sign(self._secret, owner_id)).cookie_value

    def get_or_issue(self, cookies: Mapping[str, str]) -> Tuple[str, Optional[IssuedCookie]]:
        """
        Return the owner id from a valid cookie, or mint a new one.

        Returns:
            Tuple[str, Optional[IssuedCookie]]: the owner id, and a cookie
            directive when a new id was minted (None otherwise).
        """
        owner_id = self._owner_from(cookies)
        if owner_id is not None:
            return owner_id, None
        owner_id = new_owner_id()
        return owner_id, IssuedCookie(value=self.sign_cookie_value(owner_id))

    def validate(self, cookies: Mapping[str, str]) -> Tuple[str, bool]:
        """Read-only check; never mints. Returns ("", False) when invalid."""
        owner_id = self._owner_from(cookies)
        if owner_id is None:
            return "", False
        return owner_id, True
