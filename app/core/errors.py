from typing import Any


class LifecycleError(Exception):
    """
    Typed failure of a marketplace operation.
    Raised by services, rendered by the API layer as {"detail": ...} with status_code.
    """
    status_code: int = 400

    def __init__(self, detail: Any):
        super().__init__(str(detail))
        self.detail = detail


class NotFound(LifecycleError):
    status_code = 404


class Forbidden(LifecycleError):
    status_code = 403


class Conflict(LifecycleError):
    status_code = 409


class InvalidState(LifecycleError):
    status_code = 400
