"""
Typed business errors raised by the workflow services.

Every error has a machine-readable ``kind`` (the class name), the HTTP status
it maps to at the API boundary, a human-readable message and optional
structured details. Routers never catch these; the handler registered in
``main.py`` renders them.
"""


class AssetTrackerError(Exception):
    status_code = 400

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind, **self.details}


class ValidationError(AssetTrackerError):
    """Malformed input or a business rule rejected at input."""
    status_code = 400


class NotFoundError(AssetTrackerError):
    status_code = 404


class InvalidStateError(AssetTrackerError):
    """Operation not permitted from the record's current status."""
    status_code = 409


class AccessDeniedError(AssetTrackerError):
    status_code = 403


class InsufficientSupplyError(AssetTrackerError):
    status_code = 409

    def __init__(self, requested: int, available: int, message: str | None = None):
        super().__init__(
            message or f"Insufficient quantity. Available: {available}, Requested: {requested}",
            requested=requested,
            available=available,
        )
        self.requested = requested
        self.available = available


class AllocationError(AssetTrackerError):
    """Explicit asset ids that do not all resolve to eligible assets."""
    status_code = 400

    def __init__(self, message: str, asset_ids: list | None = None):
        super().__init__(message, asset_ids=[str(a) for a in (asset_ids or [])])
        self.asset_ids = asset_ids or []
