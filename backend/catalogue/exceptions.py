"""
Catalogue error taxonomy.

Raised by validation and the repositories, passed through the service layer
untouched, and mapped to HTTP status codes by the routers.
"""
from datetime import datetime
from typing import Optional


class CatalogueException(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(CatalogueException):
    """Malformed or out-of-range payload; nothing was persisted."""


class DuplicateSku(CatalogueException):
    """A variant SKU collides with one already stored (or within the same batch)."""


class NotFound(CatalogueException):
    """No such row, or a soft-deleted product on a read path."""


class AlreadyDeleted(CatalogueException):
    """The product exists but was soft-deleted earlier."""

    def __init__(self, message: str, deleted_at: Optional[datetime]):
        super().__init__(message)
        self.deleted_at = deleted_at


class LastVariant(CatalogueException):
    """Refusal to remove the only remaining variant of a product."""
