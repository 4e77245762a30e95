"""Error taxonomy shared by the scheduling engine and the HTTP routes."""

from fastapi import HTTPException, status


class SchedulingError(Exception):
    """Base class for failures raised by the scheduling engine."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(SchedulingError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(SchedulingError):
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(SchedulingError):
    status_code = status.HTTP_403_FORBIDDEN


class NoAvailability(SchedulingError):
    status_code = status.HTTP_409_CONFLICT


class Unavailable(SchedulingError):
    status_code = status.HTTP_409_CONFLICT


class SlotTaken(SchedulingError):
    status_code = status.HTTP_409_CONFLICT


class QueryTimeout(SchedulingError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


class Internal(SchedulingError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def to_http_exception(exc: SchedulingError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.message)
