# src/tezeus/shared/request_context.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional

# Header convention shared by the client layer and the HTTP surface
USER_ID_HEADER = "x-system-user-id"
USER_EMAIL_HEADER = "x-system-user-email"
WORKSPACE_ID_HEADER = "x-workspace-id"

CONTEXT_HEADERS = (USER_ID_HEADER, USER_EMAIL_HEADER, WORKSPACE_ID_HEADER)


@dataclass(frozen=True, slots=True)
class RequestContext:
    """
    Identity of the caller for one backend call.

    The client builds it from its session; the server rebuilds it from the
    incoming headers. `workspace_id` is None for user-scoped calls
    (e.g. listing the workspaces a user belongs to).
    """
    user_id: str
    user_email: str = ""
    workspace_id: Optional[str] = None

    def to_headers(self) -> Dict[str, str]:
        headers = {
            USER_ID_HEADER: self.user_id,
            USER_EMAIL_HEADER: self.user_email,
        }
        if self.workspace_id:
            headers[WORKSPACE_ID_HEADER] = self.workspace_id
        return headers

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> Optional["RequestContext"]:
        """Return None when no user id is present; header lookup is case-insensitive."""
        lowered = {str(k).lower(): v for k, v in headers.items()}
        user_id = (lowered.get(USER_ID_HEADER) or "").strip()
        if not user_id:
            return None
        workspace_id = (lowered.get(WORKSPACE_ID_HEADER) or "").strip() or None
        return cls(
            user_id=user_id,
            user_email=(lowered.get(USER_EMAIL_HEADER) or "").strip(),
            workspace_id=workspace_id,
        )

    def with_workspace(self, workspace_id: str) -> "RequestContext":
        return RequestContext(user_id=self.user_id, user_email=self.user_email, workspace_id=workspace_id)
