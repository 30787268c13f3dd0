"""
Application error taxonomy.

AppError subclasses carry an HTTP status so the exception handlers can render
them with the standard error envelope. DeliveryError / PushDeliveryError never
reach HTTP: the proximity pipeline logs them per recipient and moves on.
"""


class AppError(Exception):
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(AppError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class DeliveryError(AppError):
    """A live event channel could not be written to."""
    code = "delivery_failed"


class PushDeliveryError(AppError):
    """The outbound push call failed."""
    code = "push_failed"
    status_code = 502
