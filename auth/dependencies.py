"""
FastAPI dependency functions for owner identity.

These can be used in routes with Depends(). The IdentityService instance
lives on `app.state.identity` (set by the app factory).
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request, Response

from .schemas import IssuedCookie
from .service import IdentityService


@dataclass
class OwnerContext:
    """Owner id for the current request plus a cookie to set, if one was minted."""
    owner_id: str
    cookie: Optional[IssuedCookie] = None

    def apply(self, response: Response) -> Response:
        """Attach the minted cookie (if any) to `response` and return it."""
        if self.cookie is not None:
            response.set_cookie(
                key=self.cookie.name,
                value=self.cookie.value,
                max_age=self.cookie.max_age,
                path=self.cookie.path,
                httponly=self.cookie.httponly,
            )
        return response


def get_identity(request: Request) -> IdentityService:
    return request.app.state.identity


def get_owner(request: Request, identity: IdentityService = Depends(get_identity)) -> OwnerContext:
    """
    Dependency that returns the caller's owner id, minting one if needed.

    Routes must pass their response through `OwnerContext.apply` so a newly
    minted cookie reaches the client.
    """
    owner_id, cookie = identity.get_or_issue(request.cookies)
    return OwnerContext(owner_id=owner_id, cookie=cookie)
