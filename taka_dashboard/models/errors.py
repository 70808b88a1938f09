"""Error types raised at the record store and form boundaries."""
from typing import Dict, Optional


class CollectionValidationError(ValueError):
    """Input failed validation; nothing was sent to the store."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        message = "; ".join(f"{field}: {msg}" for field, msg in self.errors.items())
        super().__init__(message or "Invalid collection data")


class RecordStoreError(Exception):
    """Remote call failed (network, timeout, unexpected response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
