"""
Shared FastAPI dependencies
"""

import logging

from fastapi import Depends, Request, Response

from core.container import ServiceContainer
from utils.error_handlers import RateLimitError

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session_id"


def get_container(request: Request) -> ServiceContainer:
    """Services built during application startup"""
    return request.app.state.container


def get_session_id(
    request: Request,
    response: Response,
    container: ServiceContainer = Depends(get_container)
) -> str:
    """
    Resolve the anonymous session from its cookie.

    Unknown or expired sessions are replaced by a fresh one and the cookie
    is (re)issued.
    """
    sessions = container.session
    session_id = request.cookies.get(SESSION_COOKIE_NAME)

    if session_id and sessions.get_session(session_id):
        sessions.touch(session_id)
        return session_id

    session_id = sessions.create_session()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=session_id,
        max_age=int(sessions.expiry_seconds),
        httponly=True,
        samesite="strict",
        secure=container.settings.ENVIRONMENT == "production",
    )
    logger.info(f"Issued new session {session_id}")
    return session_id


def enforce_ip_rate_limit(
    request: Request,
    response: Response,
    container: ServiceContainer = Depends(get_container)
) -> None:
    """Count the request against its client IP; 429 once the window is used up"""
    if not container.settings.RATE_LIMIT_ENABLED:
        return

    client_ip = request.client.host if request.client else "unknown"
    status = container.rate_limiter.hit(client_ip)
    response.headers.update(status.headers())

    if not status.allowed:
        raise RateLimitError(
            f"Rate limit exceeded. Too many requests from this IP. "
            f"Try again in {status.retry_after} seconds.",
            retry_after=status.retry_after,
            headers=status.headers(),
            details={"limit": status.limit},
        )
