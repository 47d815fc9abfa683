# agentdocs/errors.py
"""
Catalog error taxonomy.

Store and service code raise these; the gateway maps them to HTTP status
codes in a single exception handler. NotVerified is not an exception: it is
returned as data (see not_verified()).
"""

from typing import Any, Dict, Optional

E_NOT_FOUND = "E_NOT_FOUND"
E_VALIDATION = "E_VALIDATION"
E_CONFLICT = "E_CONFLICT"
E_UPSTREAM = "E_UPSTREAM"


class CatalogError(Exception):
    error_code = "E_INTERNAL"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFound(CatalogError):
    error_code = E_NOT_FOUND


class ValidationError(CatalogError):
    error_code = E_VALIDATION


class Conflict(CatalogError):
    error_code = E_CONFLICT


class UpstreamFailure(CatalogError):
    error_code = E_UPSTREAM


def not_verified(status: str) -> Dict[str, Any]:
    """Rejection payload for a full-content request on an unverified snippet."""
    return {"error": "Snippet not verified", "status": status}


def is_not_verified(payload: Dict[str, Any]) -> bool:
    return "error" in payload
