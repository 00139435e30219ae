"""
NoteCraft Backend: Owner Identity
===================================

The upstream session layer authenticates the user and forwards the user id in
the X-User-ID header. These dependencies only read it; NoteCraft never sees
credentials.

    get_optional_user_id   None for anonymous callers (POST /api/ingest)
    get_current_user_id    401 "Unauthorized" when missing (notes routes)
    get_uploading_user_id  401 with the sign-in message (file routes)
"""

from typing import Optional

from fastapi import Depends, Header

from notecraft.exceptions import SIGN_IN_MESSAGE, UnauthorizedError

USER_ID_HEADER = "X-User-ID"


async def get_optional_user_id(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
) -> Optional[str]:
    if x_user_id is None:
        return None
    return x_user_id.strip() or None


async def get_current_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    if not user_id:
        raise UnauthorizedError()
    return user_id


async def get_uploading_user_id(
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> str:
    if not user_id:
        raise UnauthorizedError(message=SIGN_IN_MESSAGE)
    return user_id
