class AdRoiError(Exception):
    """Base class for failures surfaced to the user as one notification."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, toast: str | None = None):
        super().__init__(message)
        self.message = message
        self.toast = toast or self.kind


class GatewayError(AdRoiError):
    kind = "gateway"
    status_code = 502


class NotFoundError(AdRoiError):
    kind = "not-found"
    status_code = 404


class ValidationError(AdRoiError):
    kind = "invalid"
    status_code = 422


class ConflictError(AdRoiError):
    """Raised when a write carries a version older than the stored row."""

    kind = "conflict"
    status_code = 409


class PermissionDeniedError(AdRoiError):
    kind = "forbidden"
    status_code = 403
