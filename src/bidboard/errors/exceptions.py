"""Custom exception classes for the BidBoard API."""


class BidBoardError(Exception):
    """Base exception for BidBoard."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(BidBoardError):
    """Schema or request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(BidBoardError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class PermissionDeniedError(BidBoardError):
    """Actor role is not allowed to perform a board action."""

    def __init__(self, message: str, details=None):
        super().__init__("PERMISSION_DENIED", message, details, status_code=403)


class CapacityError(BidBoardError):
    """Hard WIP limit reached on the destination column."""

    def __init__(self, message: str, details=None):
        super().__init__("CAPACITY_EXCEEDED", message, details, status_code=409)


class ConflictError(BidBoardError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class ConfigurationError(BidBoardError):
    """Board configuration is malformed and needs administrator action."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFIGURATION_ERROR", message, details, status_code=422)


class PersistenceError(BidBoardError):
    """The record store rejected or failed a write."""

    def __init__(self, message: str, details=None):
        super().__init__("PERSISTENCE_ERROR", message, details, status_code=503)
