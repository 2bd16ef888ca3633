from __future__ import annotations

from typing import Dict

from tezeus.shared.exceptions import NoWorkspaceSelected, Unauthenticated
from tezeus.shared.request_context import RequestContext

from .session import ClientSession


def user_context(session: ClientSession) -> RequestContext:
    """Raises Unauthenticated when no cached user with an id exists. No I/O."""
    if session.user is None or not session.user.id:
        raise Unauthenticated()
    return RequestContext(user_id=session.user.id, user_email=session.user.email or "")


def workspace_context(session: ClientSession) -> RequestContext:
    # user check first so the failure does not depend on which piece is missing
    ctx = user_context(session)
    if not session.workspace_id:
        raise NoWorkspaceSelected()
    return ctx.with_workspace(session.workspace_id)


def build_workspace_headers(session: ClientSession) -> Dict[str, str]:
    """x-system-user-id, x-system-user-email and x-workspace-id for workspace-scoped calls."""
    return workspace_context(session).to_headers()


def build_user_headers(session: ClientSession) -> Dict[str, str]:
    """User headers only; used to list the workspaces a user can select."""
    return user_context(session).to_headers()
