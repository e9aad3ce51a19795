"""Google Drive API exceptions."""


class DriveAPIError(Exception):
    """Base exception for Drive API errors."""

    pass


class HTTPError(DriveAPIError):
    """Raised when the Drive API responds with a non-2xx status."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Drive API error {status_code}: {body}")


class DecodeError(DriveAPIError):
    """Raised when a Drive API response has an unexpected shape."""

    pass


class TransportError(DriveAPIError):
    """Raised when a request fails before a response is received."""

    pass
