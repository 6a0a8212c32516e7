class SchedulingError(Exception):
    """Base class for errors raised by the freedom block scheduler."""

    pass


class ValidationError(SchedulingError):
    """Raised when a requested start/end is missing, unparsable or not ordered after rounding."""

    pass


class NotFoundError(SchedulingError):
    """Raised when a block id does not resolve to a visible block of the caller."""

    pass


class ConflictError(SchedulingError):
    """Raised when a block would overlap another non-excluded block."""

    pass


class UpstreamError(SchedulingError):
    """Raised when the calendar provider, the alarm endpoints or the webhook fail."""

    pass


# Mapping of scheduling errors to HTTP status codes
ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 400,
    UpstreamError: 500,
}


def status_for(error: SchedulingError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            return status
    return 500
