"""Google OAuth authentication exceptions."""


class AuthError(Exception):
    """Base exception for authentication errors."""

    pass


class InvalidRedirectError(AuthError):
    """Raised when a redirect URL is not a valid authorization callback."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid redirect {url!r}: {reason}")


class StateMismatchError(AuthError):
    """Raised when the callback state does not match the pending sign-in."""

    pass


class ExchangeFailedError(AuthError):
    """Raised when the authorization code cannot be exchanged for tokens."""

    def __init__(self, status_code: int | None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Code exchange failed (status {status_code}): {body}")


class NotSignedInError(AuthError):
    """Raised when an access token is requested but no credentials are stored."""

    def __init__(self):
        super().__init__("Not signed in. Run 'gdrive-client login' to authorize.")


class NoRefreshTokenError(AuthError):
    """Raised when expired credentials carry no refresh token."""

    pass


class RefreshFailedError(AuthError):
    """Raised when the token endpoint rejects a refresh."""

    def __init__(self, status_code: int | None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Token refresh failed (status {status_code}): {body}")


class TokenDecodeError(AuthError):
    """Raised when a token endpoint response has an unexpected shape."""

    pass
