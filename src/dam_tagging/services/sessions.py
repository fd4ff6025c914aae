"""Authenticated DAM session lifecycle."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TypeVar

from dam_tagging.adapters.dam_client import DamClient
from dam_tagging.errors import (
    AuthError,
    AuthenticationRequired,
    OperationCancelled,
    RemoteError,
)

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Session:
    """Opaque credential obtained at login."""

    credential: str
    established_at: datetime


def check_cancelled(cancel_event: asyncio.Event | None) -> None:
    """Raise if the caller asked to stop before the next remote call."""
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelled("Operation cancelled before the next DAM call")


@dataclass
class SessionManager:
    """Owns the single DAM session of a service instance."""

    client: DamClient
    username: str
    password: str
    _session: Session | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _listeners: list[Callable[[], Awaitable[object]]] = field(
        default_factory=list, init=False, repr=False
    )
    _notifying: bool = field(default=False, init=False, repr=False)

    @property
    def session(self) -> Session | None:
        """Return the live session, if any."""
        return self._session

    @property
    def is_authenticated(self) -> bool:
        """Whether a credential is currently held."""
        return self._session is not None

    def on_established(self, listener: Callable[[], Awaitable[object]]) -> None:
        """Register a coroutine to run after every successful login."""
        self._listeners.append(listener)

    async def ensure_authenticated(
        self, cancel_event: asyncio.Event | None = None
    ) -> None:
        """Log in unless a credential is already held."""
        if self._session is not None:
            return
        async with self._lock:
            if self._session is not None:
                return
            check_cancelled(cancel_event)
            await self._login()
        await self._notify_established()

    def invalidate(self) -> None:
        """Drop the current credential; the next call logs in again."""
        if self._session is not None:
            _logger.info("DAM session invalidated")
        self._session = None

    async def call(
        self,
        request: Callable[[str], Awaitable[T]],
        *,
        action: str,
        cancel_event: asyncio.Event | None = None,
    ) -> T:
        """Run a remote request with the session credential.

        A request rejected as authentication-required invalidates the session,
        logs in again and is retried exactly once.
        """
        await self.ensure_authenticated(cancel_event)
        session = self._require_session()
        check_cancelled(cancel_event)
        try:
            return await request(session.credential)
        except AuthenticationRequired:
            _logger.warning("DAM rejected %s; re-authenticating once", action)
            if self._session is session:
                self.invalidate()
        await self.ensure_authenticated(cancel_event)
        check_cancelled(cancel_event)
        return await request(self._require_session().credential)

    async def _login(self) -> None:
        try:
            credential = await self.client.login(self.username, self.password)
        except AuthError as exc:
            self._session = None
            _logger.error(
                "DAM login rejected: status=%s reason=%s",
                exc.remote_status,
                exc.reason,
            )
            raise AuthError(exc.reason, remote_status=exc.remote_status) from exc
        except RemoteError as exc:
            self._session = None
            _logger.error("DAM login failed: status=%s", exc.remote_status)
            raise AuthError(
                "Login request failed", remote_status=exc.remote_status
            ) from exc
        self._session = Session(
            credential=credential, established_at=datetime.now(tz=UTC)
        )
        _logger.info("Authenticated with DAM")

    async def _notify_established(self) -> None:
        # Listeners that re-enter the session during a login must not loop.
        if self._notifying:
            return
        self._notifying = True
        try:
            for listener in self._listeners:
                try:
                    await listener()
                except (AuthError, RemoteError) as exc:
                    _logger.warning("Post-login hook failed: %s", exc)
        finally:
            self._notifying = False

    def _require_session(self) -> Session:
        session = self._session
        if session is None:
            raise AuthError("No DAM session is established")
        return session
