from typing import Optional

from fastapi import Header, Query

from conduit.config import settings
from conduit.errors import ErrorKind, ServiceError
from conduit.security import decode_access_token, parse_authorization_header


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates ``limit`` /
    ``offset`` query parameters.

    Usage in a router::

        @router.get("/articles")
        async def list_articles(pagination: PaginationParams = Depends()):
            ...

    Attributes
    ----------
    limit:
        Page size, clamped to ``settings.MAX_PAGE_SIZE`` regardless of the
        value supplied by the caller.
    offset:
        Number of matching rows to skip.
    """

    def __init__(
        self,
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned (values above the maximum are clamped).",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of items to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE)
        self.offset = offset


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def _viewer_from_header(authorization: Optional[str]) -> Optional[int]:
    token = parse_authorization_header(authorization)
    if token is None:
        return None
    return decode_access_token(token)


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> int:
    """Require a valid ``Authorization: Token <jwt>`` header; 401 otherwise."""
    user_id = _viewer_from_header(authorization)
    if user_id is None:
        raise ServiceError(ErrorKind.UNAUTHORIZED)
    return user_id


async def get_optional_user_id(authorization: Optional[str] = Header(None)) -> Optional[int]:
    """Like ``get_current_user_id`` but yields None instead of failing."""
    return _viewer_from_header(authorization)
