from fastapi import HTTPException, status


class BillableError(Exception):
    """Base class for errors raised by the time-tracking and billing core."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BillableError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BillableError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(BillableError):
    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT


class PermissionDeniedError(BillableError):
    code = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(BillableError):
    code = "validation_error"
    status_code = 422


def get_user_exception():
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    return credentials_exception
