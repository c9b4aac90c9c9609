from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import sessionmaker

from ._singletons import get_session_factory
from .errors import NotFound, Unauthorized
from .stores import User, UserStore


def current_user(
    x_user_id: Optional[str] = Header(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
) -> User:
    """
    Resolve the caller from the ``X-User-Id`` header set by the session
    layer in front of this service.
    """
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized("Unauthorized")
    user = UserStore(session_factory).find_by_id(x_user_id.strip())
    if user is None:
        raise NotFound("User not found")
    return user
