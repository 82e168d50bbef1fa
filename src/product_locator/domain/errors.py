"""Error taxonomy for product search.

Every failure surfaced by the search pipeline is a ``ProductSearchError``.
Each subclass carries a stable ``code`` and the HTTP status the routing
layer maps it to. All errors are terminal for the current request.
"""

from __future__ import annotations


class ProductSearchError(Exception):
    """Base error for the product search domain."""

    code = "internal"
    http_status = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "message": self.message}


class InvalidArgumentError(ProductSearchError):
    """Raised when a required request parameter is missing or malformed."""

    code = "invalid_argument"
    http_status = 400


class StoreNotFoundError(ProductSearchError):
    """Raised when a store id does not resolve to a chain."""

    code = "not_found"
    http_status = 404

    def __init__(self, store_id: int) -> None:
        super().__init__(f"Store not found: {store_id}")
        self.store_id = store_id


class DependencyUnavailableError(ProductSearchError):
    """Raised when the catalog store lacks the trigram similarity capability.

    This is a deployment defect, not a transient fault.
    """

    code = "dependency_unavailable"
    http_status = 503


class InternalSearchError(ProductSearchError):
    """Raised for any other unexpected failure in the fetch or scoring pipeline."""

    code = "internal"
    http_status = 500
