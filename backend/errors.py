"""Error kinds raised by the POI store, the reconciler and the HTTP layer."""


class POIError(Exception):
    """Base error. `status_code` is the HTTP status the API maps it to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(POIError):
    """Malformed or out-of-range input."""

    status_code = 400


class Forbidden(POIError):
    status_code = 403


class NotFound(POIError):
    status_code = 404

    def __init__(self, message: str = "POI not found"):
        super().__init__(message)


class StorageError(POIError):
    """The persistence layer failed."""

    status_code = 500


class Unauthorized(POIError):
    """No caller identity on the request."""

    status_code = 401
