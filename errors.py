"""
Error taxonomy

Every failure a request can hit is one of these. Handlers raise them and the
application turns them into `{"success": false, "error": message}`.
"""


class StoreError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StoreError):
    status_code = 400
    default_message = "Invalid request"


class DuplicateAccount(StoreError):
    status_code = 400
    default_message = "User already exists with this email"


class InvalidCredentials(StoreError):
    status_code = 401
    default_message = "Invalid email or password"


class NotFound(StoreError):
    status_code = 404
    default_message = "Not found"


class AuthError(StoreError):
    status_code = 401
    default_message = "Authentication failed"


class MissingToken(AuthError):
    status_code = 401
    default_message = "Access token required"


class InvalidToken(AuthError):
    status_code = 403
    default_message = "Invalid or expired token"


class EmptyCart(StoreError):
    status_code = 400
    default_message = "Cart is empty"


class DatabaseNotConfigured(StoreError):
    status_code = 500
    default_message = "Database not configured"
