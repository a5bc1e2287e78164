"""Request identity for protected routes"""
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request

from ..discovery.session import SessionRegistry
from ..models.user import UserProfile
from ..utils.errors import StoreError


def get_registry(request: Request) -> SessionRegistry:
    """Dependency returning the application's SessionRegistry"""
    return request.app.state.registry


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={
            "error": "Unauthorized",
            "message": message,
            "details": {}
        },
        headers={"WWW-Authenticate": "X-User-Id"}
    )


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    registry: SessionRegistry = Depends(get_registry)
) -> UserProfile:
    """
    Dependency resolving the caller's profile from the X-User-Id header

    The header is set by the authenticating gateway in front of this service.

    Raises:
        HTTPException: 401 if the header is missing or the user is unknown,
            503 if the profile store is unavailable
    """
    if not x_user_id or not x_user_id.strip():
        raise _unauthorized("Missing user identity")

    try:
        profile = await registry.users.get(x_user_id.strip())
    except StoreError as e:
        raise HTTPException(
            status_code=503,
            detail={
                "error": "StoreUnavailable",
                "message": "Could not load user profile",
                "details": {"original_error": e.message}
            }
        )

    if profile is None:
        raise _unauthorized("User not found")

    return profile


def require_auth(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    """
    Dependency shorthand for requiring an identified user

    Args:
        user: Current user from get_current_user dependency

    Returns:
        Current user profile
    """
    return user
