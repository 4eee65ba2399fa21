"""Error taxonomy shared by every inventory operation.

Each error carries the HTTP status it is surfaced with and a short,
user-facing message. Nothing here ever includes a password hash or a
stack trace.
"""


class InventoryError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message=None, detail=None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(InventoryError):
    status_code = 400
    default_message = "Missing or invalid fields"


class ConflictError(InventoryError):
    status_code = 400
    default_message = "Already exists"


class AuthError(InventoryError):
    status_code = 400
    default_message = "Invalid password"


class MissingTokenError(AuthError):
    status_code = 401
    default_message = "Token is missing"


class InvalidTokenError(AuthError):
    status_code = 403
    default_message = "Token is invalid or expired"


class NotFoundError(InventoryError):
    status_code = 404
    default_message = "Not found"


class StoreError(InventoryError):
    status_code = 500
    default_message = "Database error"


class ResourceExhausted(StoreError):
    """Raised when no pooled connection frees up within the wait limit."""

    status_code = 503
    default_message = "Database is busy, try again later"
