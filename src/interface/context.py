"""Request-scoped user context for API handlers."""

import logging
from datetime import datetime

from fastapi import Header, HTTPException, status
from pydantic import BaseModel, Field

from src.domain.common import utc_now


logger = logging.getLogger(__name__)


class RequestContext(BaseModel):
    """Who is calling and the clock reading the whole request works against."""

    user_id: str
    now: datetime = Field(default_factory=utc_now)


async def get_request_context(x_user_id: str | None = Header(default=None)) -> RequestContext:
    """Build the request context from the authenticated user id header.

    Token verification happens upstream; this service trusts the gateway to set
    ``X-User-Id`` only for authenticated callers.
    """
    if not x_user_id or not x_user_id.strip():
        logger.warning("request_missing_user_id")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return RequestContext(user_id=x_user_id.strip())
