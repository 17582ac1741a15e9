"""
Domain error taxonomy.
Each error carries the HTTP status and error code that api.errors renders
into the uniform error envelope.
"""


class AppError(Exception):
    status = 500
    error = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationError(AppError):
    status = 400
    error = "VALIDATION_ERROR"
    default_message = "Invalid input"


class MissingProviderEmail(ValidationError):
    default_message = "Email was not provided by the external provider"


class AuthenticationError(AppError):
    status = 401
    error = "UNAUTHORIZED"
    default_message = "Authentication required"


class InvalidCredentials(AuthenticationError):
    default_message = "Invalid credentials"


class InvalidToken(AuthenticationError):
    default_message = "Invalid or expired refresh token"


class PermissionDeniedError(AppError):
    status = 403
    error = "FORBIDDEN"
    default_message = "Forbidden"


class NotFoundError(AppError):
    status = 404
    error = "NOT_FOUND"
    default_message = "Resource not found"


class ConflictError(AppError):
    status = 409
    error = "CONFLICT"
    default_message = "Conflict"


class InternalError(AppError):
    pass
