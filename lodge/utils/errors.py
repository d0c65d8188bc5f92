from fastapi import status


class LodgeError(Exception):
    """Base for errors that map onto a JSON error response."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(LodgeError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(LodgeError):
    """A domain rule rejected the request (overlap, capacity, policy window)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(LodgeError):
    status_code = status.HTTP_404_NOT_FOUND


class Unauthenticated(LodgeError):
    status_code = status.HTTP_401_UNAUTHORIZED


class Forbidden(LodgeError):
    status_code = status.HTTP_403_FORBIDDEN
