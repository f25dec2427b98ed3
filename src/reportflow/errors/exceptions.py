"""Custom exception classes for the report service."""


class ReportFlowError(Exception):
    """Base exception for reportflow."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ReportFlowError):
    """Request validation failure."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(ReportFlowError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(ReportFlowError):
    """Authentication required or token invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(ReportFlowError):
    """Insufficient permissions."""

    def __init__(self, message: str = "Insufficient scope"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)


class AlreadyExistsError(ReportFlowError):
    """A record with the same key is already stored."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "ALREADY_EXISTS",
            f"{resource} '{resource_id}' already exists",
            status_code=409,
        )


class ArchiveUnavailableError(ReportFlowError):
    """The archive backend could not accept the report (retries exhausted or circuit open)."""

    def __init__(self, message: str = "Archive service unavailable", details=None):
        super().__init__("ARCHIVE_UNAVAILABLE", message, details, status_code=503)


class QueuePublishError(ReportFlowError):
    """A work item could not be handed to the queue transport."""

    def __init__(self, message: str = "Queue transport unavailable", details=None):
        super().__init__("QUEUE_UNAVAILABLE", message, details, status_code=503)


class ReportProcessingError(ReportFlowError):
    """Delivery of a work item whose request already ended FAILED."""

    def __init__(self, request_id: str, reason: str | None):
        super().__init__(
            "PROCESSING_FAILED",
            f"Report request '{request_id}' previously failed: {reason or 'unknown error'}",
            details={"request_id": request_id},
            status_code=500,
        )
        self.request_id = request_id


class StrategyConfigurationError(RuntimeError):
    """The strategy registry does not cover every report type exactly once."""
