"""Request-scoped dependencies shared by the routers."""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException

USER_ID_HEADER = "X-User-Id"


def parse_user_id(raw: Optional[str]) -> Optional[UUID]:
    """Parse a user id as sent by the identity layer, or None if unusable."""
    if not raw:
        return None
    try:
        return UUID(raw.strip())
    except ValueError:
        return None


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> UUID:
    """Dependency to get the authenticated user's id.

    Authentication happens upstream; the header is trusted as given.
    """
    user_id = parse_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id")
    return user_id
