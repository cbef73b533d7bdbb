"""Error kinds raised by the inventory core.

Every error carries the HTTP status the API answers with; the app-level
exception handler in ``main.py`` turns them into problem-details responses.
"""

from fastapi import status


class InventoryError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    title: str = "Inventory error"

    def __init__(self, detail: str = ""):
        self.detail = detail or self.title
        super().__init__(self.detail)


class ItemNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    title = "Item not found"

    def __init__(self, item_id: str, detail: str = ""):
        self.item_id = item_id
        super().__init__(detail or f"No inventory item with id {item_id!r}")


class LocationNotFound(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    title = "Location not found"

    def __init__(self, item_id: str, location: str):
        self.item_id = item_id
        self.location = location
        super().__init__(f"Item {item_id!r} is not stored at {location!r}")


class InvalidDelta(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    title = "Invalid stock change"


class PersistenceFailure(InventoryError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Persistence failure"


class StoreTimeout(PersistenceFailure):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    title = "Record store timeout"


class LogWriteFailure(PersistenceFailure):
    """Raised by the store when a log insert fails; never fatal to a mutation."""

    title = "Log write failure"


class ImportFormatError(InventoryError):
    status_code = 422
    title = "Import format error"


class NotAuthenticated(InventoryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    title = "Not authenticated"


class NotAuthorized(InventoryError):
    status_code = status.HTTP_403_FORBIDDEN
    title = "Not authorized"
