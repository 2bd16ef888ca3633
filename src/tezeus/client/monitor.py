from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Union

import jwt

from tezeus.shared.logging import get_logger, log_security_event

from .notifications import Notifier
from .session import ClientSession

logger = get_logger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]

SIGNED_OUT = "SIGNED_OUT"


async def _call(callback: Optional[Callback]) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result


def session_problem(session: ClientSession, *, now: Optional[float] = None) -> Optional[str]:
    """Why the session is no longer usable, or None when it is valid."""
    if session.user is None:
        return "no_cached_user"
    if not session.user.id or not session.user.email:
        return "incomplete_user"
    if session.access_token:
        try:
            # issued by the hosted auth platform; only the expiry is read here
            claims = jwt.decode(session.access_token, options={"verify_signature": False})
        except jwt.PyJWTError:
            return "undecodable_token"
        exp = claims.get("exp")
        if exp is None:
            return None
        try:
            expires_at = float(exp)
        except (TypeError, ValueError):
            return "undecodable_token"
        if expires_at <= (now if now is not None else time.time()):
            return "token_expired"
    return None


class SessionMonitor:
    """
    Polls the client session and forces a logout when it becomes invalid.

    Fail-closed: the first invalid check invalidates the session, runs the
    logout and redirect callbacks, notifies the user and stops polling.
    """

    def __init__(
        self,
        session: ClientSession,
        notifier: Notifier,
        *,
        on_logout: Optional[Callback] = None,
        on_redirect: Optional[Callback] = None,
        interval: float = 30.0,
    ):
        self.session = session
        self.notifier = notifier
        self.on_logout = on_logout
        self.on_redirect = on_redirect
        self.interval = interval
        self.is_running = False
        self.forced_logout_reason: Optional[str] = None
        self.shutdown_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Check once right away, then keep polling in the background."""
        if self._task is not None:
            await self.stop()
        self.shutdown_event.clear()
        self.forced_logout_reason = None
        self.is_running = True
        if not await self.check():
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self.is_running = False
        self.shutdown_event.set()
        task, self._task = self._task, None
        if task is not None and task is not asyncio.current_task():
            await task

    async def check(self) -> bool:
        reason = session_problem(self.session)
        if reason is None:
            return True
        await self._force_logout(reason)
        return False

    async def handle_auth_event(self, event: str, *_: Any) -> None:
        """Auth-state stream hook; SIGNED_OUT always logs out."""
        if event == SIGNED_OUT and self.is_running:
            await self._force_logout("signed_out")

    async def _force_logout(self, reason: str) -> None:
        # once per run; start() re-arms it after the user signs in again
        if not self.is_running:
            return
        self.forced_logout_reason = reason
        user_id = self.session.user.id if self.session.user else None
        log_security_event("session_forced_logout", user_id=user_id, reason=reason)

        self.is_running = False
        self.shutdown_event.set()
        self.session.invalidate()
        await _call(self.on_logout)
        await _call(self.on_redirect)
        self.notifier.error("Session expired", "Your session has expired. Please sign in again.")

    async def _run(self) -> None:
        logger.info("Session monitor started", interval=self.interval)
        while self.is_running and not self.shutdown_event.is_set():
            try:
                # Wait for next interval, but wake up immediately on shutdown
                await asyncio.wait_for(self.shutdown_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                if not await self.check():
                    break
            except asyncio.CancelledError:
                logger.info("Session monitor cancelled")
                break
        logger.info("Session monitor stopped", reason=self.forced_logout_reason)
