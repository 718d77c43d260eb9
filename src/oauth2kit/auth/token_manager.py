"""Token lifecycle management: caching, single-flight renewal and background refresh.

:class:`TokenManager` owns the current :class:`~oauth2kit.models.Token` for
one OAuth2 relationship and hands out access tokens to callers. It:

* Returns the cached token without any I/O while it has not expired.
* Funnels concurrent renewals into one in-flight :class:`asyncio.Task`, so
  N callers racing on a stale token cause a single token endpoint request.
* Renews with a fixed strategy order: the refresh grant first (failures are
  logged and skipped), then the caller's ``get_new_token`` callback, and
  finally :class:`~oauth2kit.exceptions.UnrecoverableAuthError`.
* Re-arms a background task after each acquisition that refreshes the token
  :data:`REFRESH_LEAD_TIME` seconds before it expires.
* Wraps outbound requests via :meth:`TokenManager.send`, attaching the bearer
  token and retrying exactly once after a 401.

Persistence is left to the caller through the ``get_stored_token`` and
``store_token`` callbacks; :class:`~oauth2kit.auth.token_store.TokenStore`
provides a file-backed pair.

Example::

    manager = TokenManager(
        client,
        get_new_token=client.client_credentials,
    )
    async with manager:
        access_token = await manager.get_access_token()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from oauth2kit.client import OAuth2Client
from oauth2kit.exceptions import OAuth2KitError, UnrecoverableAuthError
from oauth2kit.models import Token, Transport

logger = logging.getLogger(__name__)

REFRESH_LEAD_TIME = 60.0
"""Seconds before expiry at which the background refresh fires."""

REFRESH_MIN_WINDOW = 120.0
"""Tokens expiring sooner than this are not scheduled for background refresh."""

TokenCallback = Callable[[], Union[Optional[Token], Awaitable[Optional[Token]]]]
StoreCallback = Callable[[Token], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _clone_request(request: httpx.Request, content: bytes, access_token: str) -> httpx.Request:
    clone = httpx.Request(
        request.method,
        request.url,
        headers=request.headers,
        content=content,
        extensions=request.extensions,
    )
    clone.headers["Authorization"] = f"Bearer {access_token}"
    return clone


class TokenManager:
    """Keeps a valid access token available for one OAuth2 relationship.

    Callbacks may be plain functions or coroutine functions.

    Args:
        client: Protocol client used for the refresh grant. Without one the
            refresh grant step is skipped.
        get_new_token: Obtains a brand new token (for example
            ``client.client_credentials``). Called when there is no token or
            the refresh grant failed.
        get_stored_token: Loads a previously persisted token. Called once,
            before the first token is handed out.
        store_token: Persists a freshly acquired token.
        on_error: Notified with :class:`~oauth2kit.exceptions.UnrecoverableAuthError`
            before it is raised.
        schedule_refresh: Set to ``False`` to disable background refresh.
        token: Initial token, taking precedence over ``get_stored_token``.
    """

    def __init__(
        self,
        client: Optional[OAuth2Client] = None,
        *,
        get_new_token: Optional[TokenCallback] = None,
        get_stored_token: Optional[TokenCallback] = None,
        store_token: Optional[StoreCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        schedule_refresh: bool = True,
        token: Optional[Token] = None,
    ) -> None:
        self.client = client
        self._get_new_token = get_new_token
        self._get_stored_token = get_stored_token
        self._store_token = store_token
        self._on_error = on_error
        self._schedule_enabled = schedule_refresh

        self._token = token
        self._initialized = False
        self._init_task: Optional[asyncio.Task[None]] = None
        self._refresh_task: Optional[asyncio.Task[Token]] = None
        self._refresh_timer: Optional[asyncio.Task[None]] = None
        self._background: Optional[asyncio.Task[None]] = None
        self._closed = False

    @property
    def token(self) -> Optional[Token]:
        """The cached token, which may be expired. ``None`` before the first acquisition."""
        return self._token

    @property
    def refresh_scheduled(self) -> bool:
        """Whether a background refresh is currently armed."""
        return self._refresh_timer is not None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> TokenManager:
        self._closed = False
        return self

    async def __aexit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Disarm the background refresh and stop it from being re-armed.

        A background renewal already underway is cancelled. A foreground
        renewal still completes and hands its token to its callers, but
        schedules nothing. The cached token is kept and
        :meth:`get_token` keeps renewing on demand.
        """
        self._closed = True
        self._cancel_timer()
        if self._background is not None:
            self._background.cancel()
            self._background = None

    async def _ensure_initialized(self) -> None:
        if self._initialized:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize())
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        try:
            if self._token is None and self._get_stored_token is not None:
                self._token = await _resolve(self._get_stored_token())
            self._initialized = True
            self._schedule_refresh()
        finally:
            # A failed load is retried by the next caller.
            self._init_task = None

    # ------------------------------------------------------------------ #
    # Token access
    # ------------------------------------------------------------------ #

    async def get_token(self) -> Token:
        """Return a valid token, renewing it first if needed.

        A cached token with no expiry, or an expiry in the future, is
        returned as-is without any network traffic.

        Raises:
            UnrecoverableAuthError: If no renewal strategy produced a token.
        """
        await self._ensure_initialized()
        token = self._token
        if token is not None and not token.is_expired():
            return token
        return await self.refresh_token()

    async def get_access_token(self) -> str:
        """Return a valid access token string. See :meth:`get_token`."""
        token = await self.get_token()
        return token.access_token

    async def set_token(self, token: Token) -> None:
        """Install a token obtained elsewhere, storing it and scheduling its refresh."""
        self._initialized = True
        await self._accept(token)

    async def refresh_token(self) -> Token:
        """Force a renewal, or join the one already in flight.

        Only one renewal runs at a time per manager. Callers arriving while
        one is running wait for it and receive the same token (or the same
        exception).

        Raises:
            UnrecoverableAuthError: If no renewal strategy produced a token.
        """
        await self._ensure_initialized()
        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> Token:
        try:
            return await self._acquire()
        finally:
            # Cleared before waiters resume, so the next caller starts fresh.
            self._refresh_task = None

    async def _acquire(self) -> Token:
        new_token: Optional[Token] = None
        current = self._token

        if current is not None and current.refresh_token and self.client is not None:
            try:
                new_token = await self.client.refresh_token(current)
            except (OAuth2KitError, httpx.HTTPError) as exc:
                logger.info("OAuth2 refresh_token grant failed, trying other strategies: %s", exc)

        if new_token is None and self._get_new_token is not None:
            new_token = await _resolve(self._get_new_token())

        if new_token is None:
            err = UnrecoverableAuthError(
                "Unable to obtain OAuth2 tokens, a full reauth may be needed"
            )
            if self._on_error is not None:
                await _resolve(self._on_error(err))
            raise err

        await self._accept(new_token)
        return new_token

    async def _accept(self, token: Token) -> None:
        self._token = token
        if self._store_token is not None:
            await _resolve(self._store_token(token))
        self._schedule_refresh()

    # ------------------------------------------------------------------ #
    # Background refresh
    # ------------------------------------------------------------------ #

    def _cancel_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    def _schedule_refresh(self) -> None:
        self._cancel_timer()
        if self._closed or not self._schedule_enabled:
            return

        token = self._token
        if token is None or token.expires_at is None or not token.refresh_token:
            return
        remaining = token.expires_in()
        if remaining is None or remaining < REFRESH_MIN_WINDOW:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._refresh_timer = loop.create_task(
            self._background_refresh(remaining - REFRESH_LEAD_TIME)
        )

    async def _background_refresh(self, delay: float) -> None:
        await asyncio.sleep(delay)
        # Detach first so the reschedule inside refresh_token() does not cancel us.
        self._refresh_timer = None
        self._background = asyncio.current_task()
        try:
            await self.refresh_token()
        except Exception:
            logger.exception("Error while doing a background OAuth2 auto-refresh")
        finally:
            if self._background is asyncio.current_task():
                self._background = None

    # ------------------------------------------------------------------ #
    # Request middleware
    # ------------------------------------------------------------------ #

    async def send(self, request: httpx.Request, next_send: Transport) -> httpx.Response:
        """Send *request* through *next_send* with a bearer token attached.

        The request itself is never modified; each attempt gets a fresh copy.
        On a 401 the token is renewed and the request is retried once. The
        second response is returned whatever its status.

        Args:
            request: The outbound request.
            next_send: The next hop, e.g. ``httpx.AsyncClient.send``.

        Returns:
            The final :class:`httpx.Response`.

        Raises:
            UnrecoverableAuthError: If no token could be obtained.
        """
        access_token = await self.get_access_token()
        content = await request.aread()

        response = await next_send(_clone_request(request, content, access_token))
        if response.status_code != 401:
            return response

        await response.aclose()
        token = await self.refresh_token()
        return await next_send(_clone_request(request, content, token.access_token))
