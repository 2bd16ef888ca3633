"""Visibility rules for the conversation header buttons."""

from __future__ import annotations

from typing import Any, Mapping

from .session import ClientSession


def _assigned_user(conversation: Any) -> Any:
    if isinstance(conversation, Mapping):
        return conversation.get("assigned_user_id")
    return getattr(conversation, "assigned_user_id", None)


def show_accept_button(conversation: Any) -> bool:
    return _assigned_user(conversation) is None


def show_end_button(conversation: Any) -> bool:
    return _assigned_user(conversation) is not None


def can_accept(conversation: Any, session: ClientSession) -> bool:
    return show_accept_button(conversation) and session.is_authenticated
