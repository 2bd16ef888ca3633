from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Set, Union

from tezeus.shared.exceptions import DomainError
from tezeus.shared.logging import get_logger

from .api import ApiError, TezeusApiClient
from .notifications import Notifier

logger = get_logger(__name__)

RefreshCallback = Callable[[], Union[None, Awaitable[None]]]


async def _call(callback: Optional[RefreshCallback]) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result


def _failure(exc: Exception) -> Dict[str, Any]:
    """`{success: false, error, ...}`; the server's envelope is kept when there is one."""
    if isinstance(exc, ApiError) and isinstance(exc.body, Mapping):
        body = dict(exc.body)
        body["success"] = False
        body.setdefault("error", exc.message)
        return body
    message = exc.message if isinstance(exc, DomainError) else str(exc)
    return {"success": False, "error": message or exc.__class__.__name__}


class ConversationActions:
    """
    Accept / End as the conversation view triggers them.

    Failures, including a missing session or workspace, end up as destructive
    notifications and a `{success: false, error}` result; the methods never raise.
    """

    def __init__(self, api: TezeusApiClient, notifier: Notifier):
        self.api = api
        self.notifier = notifier
        self.in_flight: Set[str] = set()

    async def _invoke(self, name: str, conversation_id: str) -> Dict[str, Any]:
        if conversation_id in self.in_flight:
            return {"success": False, "error": "Request already in progress", "inFlight": True}
        self.in_flight.add(conversation_id)
        try:
            return await self.api.invoke(name, {"conversation_id": conversation_id})
        except Exception as exc:
            logger.error("Conversation action failed", action=name, conversation_id=conversation_id, error=str(exc))
            return _failure(exc)
        finally:
            self.in_flight.discard(conversation_id)

    async def accept(self, conversation_id: str, on_refresh: Optional[RefreshCallback] = None) -> Dict[str, Any]:
        body = await self._invoke("accept-conversation", conversation_id)
        if body.get("inFlight"):
            return body
        if body.get("success"):
            self.notifier.notify("Conversation accepted", "You are now handling this conversation.")
            await _call(on_refresh)
        elif body.get("alreadyAssigned"):
            self.notifier.error("Conversation already assigned", "Another agent accepted it first.")
            await _call(on_refresh)
        else:
            self.notifier.error("Could not accept conversation", str(body.get("error") or ""))
        return body

    async def end(self, conversation_id: str, on_refresh: Optional[RefreshCallback] = None) -> Dict[str, Any]:
        body = await self._invoke("end-conversation", conversation_id)
        if body.get("inFlight"):
            return body
        if not body.get("success"):
            self.notifier.error("Could not end conversation", str(body.get("error") or ""))
            return body
        if body.get("alreadyClosed"):
            self.notifier.notify("Conversation already closed", "It was ended before; nothing changed.")
        else:
            self.notifier.notify("Conversation ended", "The conversation was closed.")
        await _call(on_refresh)
        return body
