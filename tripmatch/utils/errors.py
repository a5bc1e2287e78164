"""Error taxonomy for the discovery engine"""
from typing import Any, Dict, Optional


class DiscoveryError(Exception):
    """Base class for discovery and matching failures"""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidInputError(DiscoveryError):
    """Raised before any I/O when a required input is missing or malformed"""


class StoreError(DiscoveryError):
    """Raised when a document store or RPC call fails"""


class ConnectionCreationError(StoreError):
    """Raised when a connection record could not be written"""


def require_id(value: Any, name: str) -> str:
    """
    Validate a document or user ID

    Args:
        value: Candidate ID value
        name: Field name used in the error message

    Returns:
        The ID, stripped of surrounding whitespace

    Raises:
        InvalidInputError: If the value is not a non-empty string
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"Invalid {name}", details={"field": name})
    return value.strip()
