"""Google OAuth sign-in for installed apps.

This module drives the authorization-code flow with PKCE:
- sign_in() opens the Google consent page
- handle_redirect() receives the callback URL and exchanges the code
- valid_access_token() returns a usable token, refreshing it when expired
- sign_out() revokes the token and forgets stored credentials

Credentials are persisted through a CredentialStore; the token lifecycle
is shared by every DriveClient built on the same controller.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import parse_qsl, urlsplit

import httpx
from authlib.common.security import generate_token
from authlib.oauth2.rfc6749.errors import MismatchingStateException, MissingCodeException
from authlib.oauth2.rfc6749.parameters import (
    parse_authorization_code_response,
    prepare_grant_uri,
    prepare_token_request,
)
from authlib.oauth2.rfc7636 import create_s256_code_challenge
from google.oauth2.credentials import Credentials as GoogleCredentials

from google_drive_client.auth.credentials import (
    TOKEN_URL,
    Credentials,
    credentials_from_token_response,
    utcnow,
)
from google_drive_client.auth.exceptions import (
    ExchangeFailedError,
    InvalidRedirectError,
    NotSignedInError,
    StateMismatchError,
    TokenDecodeError,
)
from google_drive_client.auth.refresher import FORM_HEADERS, TokenRefresher
from google_drive_client.auth.storage import CredentialStore
from google_drive_client.config import Config

logger = logging.getLogger(__name__)

# Tokens this close to expiry are refreshed before use
TOKEN_EXPIRY_LEEWAY = timedelta(seconds=60)


class AuthState(enum.Enum):
    SIGNED_OUT = "signed_out"
    AUTHORIZING = "authorizing"
    SIGNED_IN = "signed_in"


@dataclass(frozen=True)
class AuthorizationState:
    """Values generated for one sign-in attempt, checked on the callback."""

    state: str
    code_verifier: str

    @property
    def code_challenge(self) -> str:
        return create_s256_code_challenge(self.code_verifier)


class SignInStateBroadcaster:
    """Fan out sign-in state changes to any number of listeners."""

    def __init__(self):
        self._listeners: list[Callable[[bool], Any]] = []

    def subscribe(self, listener: Callable[[bool], Any]) -> Callable[[], None]:
        """Register a listener.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, is_signed_in: bool) -> None:
        for listener in list(self._listeners):
            listener(is_signed_in)

    @property
    def subscriber_count(self) -> int:
        return len(self._listeners)


class AuthController:
    """Google OAuth sign-in, sign-out and token lifecycle.

    Example:
        >>> auth = AuthController(config, CredentialStore(KeyringStorage()), http)
        >>> if not await auth.is_signed_in():
        ...     await auth.sign_in()  # opens the browser
        ...     await auth.handle_redirect(input("Paste redirect URL: "))
        >>> token = await auth.valid_access_token()
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = TOKEN_URL
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        config: Config,
        store: CredentialStore,
        http: httpx.AsyncClient,
        open_url: Callable[[str], Any] | None = None,
        refresher: TokenRefresher | None = None,
        state_factory: Callable[[], str] = generate_token,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the controller.

        Args:
            config: OAuth client configuration.
            store: Where credentials are persisted.
            http: HTTP client used for token and revoke requests.
            open_url: Opens the authorization URL. Defaults to the system browser.
            refresher: Token refresher. Built from config and http if not provided.
            state_factory: Generates the random state parameter.
            clock: Returns the current UTC time.
        """
        if open_url is None:
            import webbrowser

            open_url = webbrowser.open

        self.config = config
        self.store = store
        self.http = http
        self.open_url = open_url
        self.refresher = refresher or TokenRefresher(config, http, clock=clock)
        self.state_factory = state_factory
        self.clock = clock

        self._pending: AuthorizationState | None = None
        self._refresh_lock = asyncio.Lock()
        self._broadcaster = SignInStateBroadcaster()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> AuthState:
        if self._pending is not None:
            return AuthState.AUTHORIZING
        if self.store.load() is not None:
            return AuthState.SIGNED_IN
        return AuthState.SIGNED_OUT

    @property
    def broadcaster(self) -> SignInStateBroadcaster:
        return self._broadcaster

    async def is_signed_in(self) -> bool:
        """Check whether credentials are stored."""
        return await asyncio.to_thread(self.store.load) is not None

    async def is_signed_in_stream(self) -> AsyncIterator[bool]:
        """Yield the current sign-in state, then every subsequent change.

        Each call is an independent subscription that starts when iteration
        starts and ends when the iterator is closed.
        """
        queue: asyncio.Queue[bool] = asyncio.Queue()
        unsubscribe = self._broadcaster.subscribe(queue.put_nowait)
        try:
            yield await self.is_signed_in()
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    async def _publish(self) -> None:
        self._broadcaster.publish(await self.is_signed_in())

    # =========================================================================
    # Sign in / sign out
    # =========================================================================

    def build_authorization_url(self, authorization: AuthorizationState) -> str:
        """Build the Google consent URL for an authorization attempt."""
        return prepare_grant_uri(
            self.AUTHORIZE_URL,
            client_id=self.config.client_id,
            response_type="code",
            redirect_uri=self.config.redirect_uri,
            scope=self.config.auth_scope,
            state=authorization.state,
            code_challenge=authorization.code_challenge,
            code_challenge_method="S256",
            access_type="offline",
            prompt="consent",
        )

    async def sign_in(self) -> str:
        """Start the OAuth flow by opening the consent page.

        The result arrives later through handle_redirect().

        Returns:
            The authorization URL that was opened.
        """
        authorization = AuthorizationState(
            state=self.state_factory(),
            code_verifier=generate_token(64),
        )
        self._pending = authorization
        url = self.build_authorization_url(authorization)

        logger.info("Opening authorization URL")
        result = self.open_url(url)
        if inspect.isawaitable(result):
            await result

        await self._publish()
        return url

    async def handle_redirect(self, url: str) -> Credentials:
        """Complete the OAuth flow from the redirect callback URL.

        Args:
            url: The full redirect URL received from the browser.

        Returns:
            The stored credentials.

        Raises:
            InvalidRedirectError: If the URL is not an authorization callback.
            StateMismatchError: If no sign-in is pending or the state differs.
            ExchangeFailedError: If the token endpoint rejects the code.
            TokenDecodeError: If the token response is malformed.
        """
        pending, self._pending = self._pending, None
        try:
            code = self._parse_redirect(url, pending)
            credentials = await self._exchange_code(code, pending)
        finally:
            await self._publish()
        return credentials

    def _matches_redirect_uri(self, url: str) -> bool:
        expected = urlsplit(self.config.redirect_uri)
        actual = urlsplit(url)
        return (
            actual.scheme.lower() == self.config.redirect_scheme
            and actual.netloc.lower() == expected.netloc.lower()
            and actual.path.rstrip("/") == expected.path.rstrip("/")
        )

    def _parse_redirect(self, url: str, pending: AuthorizationState | None) -> str:
        if not self._matches_redirect_uri(url):
            raise InvalidRedirectError(url, "does not match configured redirect URI")

        params = dict(parse_qsl(urlsplit(url).query))
        if "error" in params:
            raise InvalidRedirectError(url, params["error"])

        if pending is None:
            if "code" not in params:
                raise InvalidRedirectError(url, "missing code parameter")
            raise StateMismatchError("No sign-in in progress")

        try:
            params = parse_authorization_code_response(url, state=pending.state)
        except MissingCodeException as e:
            raise InvalidRedirectError(url, "missing code parameter") from e
        except MismatchingStateException as e:
            raise StateMismatchError("Redirect state does not match sign-in request") from e

        return params["code"]

    async def _exchange_code(self, code: str, pending: AuthorizationState) -> Credentials:
        body = prepare_token_request(
            "authorization_code",
            code=code,
            redirect_uri=self.config.redirect_uri,
            client_id=self.config.client_id,
            client_secret=self.config.client_secret,
            code_verifier=pending.code_verifier,
        )
        request = self.http.build_request("POST", self.TOKEN_URL, content=body, headers=FORM_HEADERS)

        try:
            response = await self.http.send(request)
        except httpx.HTTPError as e:
            raise ExchangeFailedError(None, str(e)) from e

        if not response.is_success:
            raise ExchangeFailedError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise TokenDecodeError(f"Token response is not JSON: {e}") from e

        credentials = credentials_from_token_response(payload, self.clock())
        await asyncio.to_thread(self.store.save, credentials)
        logger.info("Signed in")
        return credentials

    async def sign_out(self) -> None:
        """Revoke the token and delete stored credentials.

        Revocation is best-effort; failures are logged and ignored.
        """
        self._pending = None
        credentials = await asyncio.to_thread(self.store.load)
        if credentials is None:
            logger.warning("No token to revoke")
        else:
            await self._revoke(credentials.refresh_token or credentials.access_token)

        await asyncio.to_thread(self.store.delete)
        logger.info("Signed out")
        await self._publish()

    async def _revoke(self, token: str) -> None:
        request = self.http.build_request(
            "POST",
            self.REVOKE_URL,
            params={"token": token},
            headers=FORM_HEADERS,
        )
        try:
            response = await self.http.send(request)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to revoke token remotely: {e}")
            return
        if not response.is_success:
            logger.warning(f"Failed to revoke token remotely: HTTP {response.status_code}")

    # =========================================================================
    # Tokens
    # =========================================================================

    async def valid_access_token(self) -> str:
        """Get an access token that is valid for at least the expiry leeway.

        Concurrent callers share one refresh.

        Raises:
            NotSignedInError: If no credentials are stored.
            NoRefreshTokenError: If the token expired and cannot be refreshed.
            RefreshFailedError: If the refresh request fails.
            TokenDecodeError: If the refresh response is malformed.
        """
        credentials = await asyncio.to_thread(self.store.load)
        if credentials is None:
            raise NotSignedInError()
        if not credentials.is_expired(self.clock(), TOKEN_EXPIRY_LEEWAY):
            return credentials.access_token

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited
            credentials = await asyncio.to_thread(self.store.load)
            if credentials is None:
                raise NotSignedInError()
            if not credentials.is_expired(self.clock(), TOKEN_EXPIRY_LEEWAY):
                return credentials.access_token

            logger.info("Token expired, refreshing...")
            credentials = await self.refresher.refresh(credentials)
            await asyncio.to_thread(self.store.save, credentials)
            return credentials.access_token

    async def google_credentials(self) -> GoogleCredentials:
        """Get google-auth credentials for use with Google client libraries.

        Raises:
            NotSignedInError: If no credentials are stored.
        """
        await self.valid_access_token()
        credentials = await asyncio.to_thread(self.store.load)
        if credentials is None:
            raise NotSignedInError()
        return credentials.to_google_credentials(self.config)

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the stored token.

        Returns:
            Dictionary with token status, expiry and refresh token presence.
        """
        credentials = self.store.load()
        if credentials is None:
            return {"status": "no_token"}

        now = self.clock()
        expires_in = credentials.expiry_date - now
        return {
            "status": "expired" if credentials.is_expired(now) else "valid",
            "scopes": self.config.auth_scope.split(),
            "expires_in": str(max(expires_in, timedelta(0))),
            "expiry_date": credentials.expiry_date.isoformat(),
            "has_refresh_token": bool(credentials.refresh_token),
        }
