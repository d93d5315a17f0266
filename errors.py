"""Errors raised by the catalog layer and mapped to JSON by the HTTP handlers."""

from typing import Any, Optional


class CatalogError(Exception):
    """Base error for catalog operations."""
    pass


class ValidationError(CatalogError):
    """Missing or unusable input (e.g. a category without a name)."""
    pass


class UpstreamError(CatalogError):
    """The catalog store answered with an error or could not be reached."""

    def __init__(self, message: str, status: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details

    def to_dict(self) -> dict:
        out = {"error": self.message}
        if self.details is not None:
            out["details"] = self.details
        return out
