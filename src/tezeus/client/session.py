from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from tezeus.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedUser:
    id: str
    email: str = ""
    name: Optional[str] = None
    profile: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["CachedUser"]:
        if not isinstance(data, Mapping):
            return None
        return cls(
            id=str(data.get("id") or ""),
            email=str(data.get("email") or ""),
            name=data.get("name"),
            profile=data.get("profile"),
        )


@dataclass(frozen=True)
class SelectedWorkspace:
    workspace_id: str
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> Optional["SelectedWorkspace"]:
        if not isinstance(data, Mapping) or not data.get("workspace_id"):
            return None
        return cls(workspace_id=str(data["workspace_id"]), name=data.get("name"))


class ClientSession:
    """
    The signed-in user, their access token and the one selected workspace.

    Consumers receive the session explicitly; persistence is left to the
    embedding application through to_dict/from_dict.
    """

    def __init__(
        self,
        user: Optional[CachedUser] = None,
        workspace: Optional[SelectedWorkspace] = None,
        access_token: Optional[str] = None,
    ):
        self.user = user
        self.workspace = workspace
        self.access_token = access_token

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and bool(self.user.id)

    @property
    def workspace_id(self) -> Optional[str]:
        return self.workspace.workspace_id if self.workspace else None

    def sign_in(self, user: CachedUser, access_token: Optional[str] = None) -> None:
        self.user = user
        self.access_token = access_token
        self.workspace = None
        logger.info("Session signed in", user_id=user.id)

    def select_workspace(self, workspace: SelectedWorkspace) -> None:
        """Exactly one workspace is selected at a time; selecting replaces it."""
        self.workspace = workspace

    def invalidate(self) -> None:
        self.user = None
        self.workspace = None
        self.access_token = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": asdict(self.user) if self.user else None,
            "workspace": asdict(self.workspace) if self.workspace else None,
            "access_token": self.access_token,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ClientSession":
        """Tolerates missing or malformed persisted state (yields an empty session)."""
        if not isinstance(data, Mapping):
            return cls()
        return cls(
            user=CachedUser.from_dict(data.get("user")),
            workspace=SelectedWorkspace.from_dict(data.get("workspace")),
            access_token=data.get("access_token"),
        )
