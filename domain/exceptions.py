"""Domain-specific exceptions.

Custom exceptions provide better error handling and clearer intent
than generic exceptions.
"""


class LedgerError(Exception):
    """Base exception for all application errors."""


# ============================================================================
# Domain Errors
# ============================================================================


class InvalidDocumentError(LedgerError):
    """Raised when a stored document does not match the expected shape."""


class InvalidProductError(LedgerError):
    """Raised when product state is invalid."""


class InvalidSaleError(LedgerError):
    """Raised when sale input is rejected before any computation."""


class ComponentNotFoundError(LedgerError):
    """Raised when a component cannot be found."""


class ProductNotFoundError(LedgerError):
    """Raised when a product cannot be found."""


class SaleNotFoundError(LedgerError):
    """Raised when a sale cannot be found."""


# ============================================================================
# Price Lookup Errors
# ============================================================================


class PriceLookupError(LedgerError):
    """Base exception for external price lookup errors."""


class PriceLookupHTTPError(PriceLookupError):
    """HTTP or network error with status code context."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PriceLookupTimeoutError(PriceLookupError):
    """Raised when the lookup exceeds its timeout."""


class PriceNotNumericError(PriceLookupError):
    """Raised when the lookup answers without a usable price."""


class PriceLookupNotConfiguredError(PriceLookupError):
    """Raised when no lookup endpoint is configured."""


# ============================================================================
# Persistence Errors
# ============================================================================


class PersistenceError(LedgerError):
    """Base exception for persistence-related errors."""


class RecordNotFoundError(PersistenceError):
    """Raised when a record is not present in its collection."""


class InvalidStoreFileError(PersistenceError):
    """Raised when a collection file is malformed."""


class StoreRequestError(PersistenceError):
    """HTTP error talking to a remote record store."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExportError(PersistenceError):
    """Raised when export operation fails."""
