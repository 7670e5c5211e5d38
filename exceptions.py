# ============================================================================
#  exceptions.py — Sync Error Types
#  Version: 1.0.0
# ============================================================================
from typing import List, Optional


class SyncError(Exception):
    """Base class for every error raised by the sync."""


class ConfigurationError(SyncError):
    pass


class FetchError(SyncError):
    """Supplier feed could not be fetched; aborts the whole pass."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StoreError(SyncError):
    """A Shopify call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class ProductValidationError(SyncError):
    """Source product rejected before any store call."""

    def __init__(self, sku: Optional[str], problems: List[str]) -> None:
        super().__init__(f"Invalid product data for SKU {sku}: {', '.join(problems)}")
        self.sku = sku
        self.problems = problems


class DuplicateTitleError(SyncError):
    """More than one Shopify listing shares the case-folded title."""

    def __init__(self, title: str, listing_ids: List[int]) -> None:
        super().__init__(f"Duplicate listings for title '{title}': {listing_ids}")
        self.title = title
        self.listing_ids = listing_ids
# ============================================================================
# End of exceptions.py — Version: 1.0.0
# ============================================================================
