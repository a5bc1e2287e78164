"""Request dependencies for FastAPI routes"""
from .auth import get_current_user, get_registry, require_auth

__all__ = ["get_current_user", "get_registry", "require_auth"]
