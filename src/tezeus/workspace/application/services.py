from __future__ import annotations

import re
import time
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tezeus.shared.exceptions import (
    ConflictError,
    ForbiddenError,
    MissingFieldError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from tezeus.shared.logging import get_logger, log_security_event
from tezeus.shared.utils.ids import parse_uuid

from ..infrastructure.media_storage import MediaStorage
from ..infrastructure.models import SystemUser, Workspace
from ..infrastructure.repositories import (
    OrgRepository,
    SystemCustomizationRepository,
    UserRepository,
    WorkspaceRepository,
)

logger = get_logger(__name__)

MASTER_PROFILE = "master"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def _workspace_dict(ws: Workspace, connections_count: int = 0, **extra: Any) -> Dict[str, Any]:
    return {
        "workspace_id": str(ws.id),
        "name": ws.name,
        "slug": ws.slug,
        "cnpj": ws.cnpj,
        "created_at": _iso(ws.created_at),
        "updated_at": _iso(ws.updated_at),
        "connections_count": connections_count,
        **extra,
    }


class OrgService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.orgs = OrgRepository(session)
        self.users = UserRepository(session)

    async def create(self, caller_id: str, name: str) -> Dict[str, Any]:
        user = await self.users.get(parse_uuid(caller_id, "x-system-user-id"))
        if user is None or user.profile != MASTER_PROFILE:
            log_security_event("org_create_denied", user_id=caller_id)
            raise ForbiddenError("Only master users can create organizations")
        org = await self.orgs.create(name.strip())
        await self.session.commit()
        logger.info("Organization created", org_id=str(org.id))
        return {"id": str(org.id), "name": org.name, "created_at": _iso(org.created_at)}

    async def list(self) -> List[Dict[str, Any]]:
        rows = await self.orgs.list_with_counts()
        return [{**r, "id": str(r["id"]), "created_at": _iso(r["created_at"])} for r in rows]


class WorkspaceDirectoryService:
    def __init__(self, session: AsyncSession, *, default_connection_limit: int = 1):
        self.session = session
        self.users = UserRepository(session)
        self.workspaces = WorkspaceRepository(session)
        self.default_connection_limit = default_connection_limit

    async def list_for_user(self, user_id: str) -> Dict[str, Any]:
        """All workspaces for masters; memberships otherwise. Inactive users are unknown."""
        user = await self.users.get(parse_uuid(user_id, "x-system-user-id"))
        if user is None or user.status != "active":
            raise NotFoundError("User not found", code="user_not_found")

        counts = await self.workspaces.connection_counts()
        if user.profile == MASTER_PROFILE:
            workspaces = [_workspace_dict(ws, counts.get(ws.id, 0)) for ws in await self.workspaces.list_all()]
        else:
            workspaces = [
                _workspace_dict(item["workspace"], counts.get(item["workspace"].id, 0), role=item["role"])
                for item in await self.workspaces.list_for_user(user.id)
            ]
        return {"workspaces": workspaces, "userRole": user.profile}

    async def connection_limit(self, workspace_id: UUID) -> int:
        row = await self.workspaces.get_limit(workspace_id)
        return row.connection_limit if row else self.default_connection_limit

    async def visible_users(self, workspace_id: UUID) -> List[Dict[str, Any]]:
        return [
            {
                "id": str(item["user"].id),
                "name": item["user"].name,
                "email": item["user"].email,
                "profile": item["user"].profile,
                "status": item["user"].status,
                "avatar": item["user"].avatar,
                "workspace_role": item["member"].role,
                "member_id": str(item["member"].id),
                "joined_at": _iso(item["member"].created_at),
            }
            for item in await self.workspaces.list_visible_members(workspace_id)
        ]


_MEDIA_TYPE = re.compile(r"^[A-Za-z0-9_-]{1,32}$")
_EXTENSION = re.compile(r"^[A-Za-z0-9]{1,10}$")


class MediaUploadService:
    """Workspace media files; the object path embeds the workspace id and a millisecond timestamp."""

    def __init__(self, storage: MediaStorage, *, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock

    def build_path(self, workspace_id: UUID, media_type: str, filename: str) -> str:
        if not _MEDIA_TYPE.match(media_type):
            raise ValidationError("Invalid media type", details={"field": "type"})
        ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
        if not _EXTENSION.match(ext):
            raise ValidationError("File has no usable extension", details={"field": "file"})
        epoch_ms = int(self.clock() * 1000)
        return f"{workspace_id}/{media_type}-{workspace_id}-{epoch_ms}.{ext}"

    async def upload(self, workspace_id: UUID, media_type: str, filename: str, data: bytes, content_type: str) -> Dict[str, Any]:
        path = self.build_path(workspace_id, media_type, filename)
        try:
            url = await self.storage.put(path, data, content_type)
        except OSError as exc:
            logger.error("Media upload failed", path=path, error=str(exc))
            raise UpstreamError(f"Upload failed: {exc}") from exc
        logger.info("Media uploaded", path=path, size=len(data))
        return {"success": True, "url": url, "path": path}


MEMBER_ROLES = ("user", "admin", "master")
MANAGER_ROLES = ("admin", "master")
_MEMBER_UPDATABLE = ("role", "is_hidden")


async def _active_caller(users: UserRepository, caller_id: str) -> SystemUser:
    user = await users.get(parse_uuid(caller_id, "x-system-user-id"))
    if user is None or user.status != "active":
        raise NotFoundError("User not found", code="user_not_found")
    return user


class WorkspaceAdminService:
    """Workspace create (master only, with its limits row) and rename/re-document (master or workspace admin)."""

    def __init__(self, session: AsyncSession, *, default_connection_limit: int = 1):
        self.session = session
        self.users = UserRepository(session)
        self.workspaces = WorkspaceRepository(session)
        self.default_connection_limit = default_connection_limit

    async def ensure_manager(self, caller: SystemUser, workspace_id: UUID) -> None:
        if caller.profile == MASTER_PROFILE:
            return
        role = await self.workspaces.member_role(workspace_id, caller.id)
        if role not in MANAGER_ROLES:
            log_security_event("workspace_manage_denied", user_id=str(caller.id), workspace_id=str(workspace_id))
            raise ForbiddenError("Insufficient permissions to manage this workspace", code="insufficient_permissions")

    async def create(
        self, caller_id: str, name: Optional[str], cnpj: Optional[str], connection_limit: Optional[int]
    ) -> Dict[str, Any]:
        caller = await _active_caller(self.users, caller_id)
        if caller.profile != MASTER_PROFILE:
            log_security_event("workspace_create_denied", user_id=caller_id)
            raise ForbiddenError("Only master users can create workspaces")
        if not (name or "").strip():
            raise MissingFieldError("name")
        limit = connection_limit or self.default_connection_limit
        ws = await self.workspaces.create(name.strip(), (cnpj or "").strip() or None, limit)
        await self.session.commit()
        logger.info("Workspace created", workspace_id=str(ws.id), connection_limit=limit)
        return _workspace_dict(ws, connection_limit=limit)

    async def update(self, caller_id: str, workspace_id: str, name: Optional[str], cnpj: Optional[str]) -> None:
        caller = await _active_caller(self.users, caller_id)
        ws_id = parse_uuid(workspace_id, "workspaceId")
        ws = await self.workspaces.get(ws_id)
        if ws is None:
            raise NotFoundError("Workspace not found", code="workspace_not_found")
        await self.ensure_manager(caller, ws_id)
        if name is not None:
            if not name.strip():
                raise ValidationError("Workspace name cannot be empty", details={"field": "name"})
            ws.name = name.strip()
        if cnpj is not None:
            ws.cnpj = cnpj.strip() or None
        await self.session.commit()
        logger.info("Workspace updated", workspace_id=workspace_id)


class WorkspaceMemberService:
    """Membership administration for masters and workspace admins."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.workspaces = WorkspaceRepository(session)
        self.admin = WorkspaceAdminService(session)

    async def _authorize(self, caller_id: str, workspace_id: str) -> UUID:
        caller = await _active_caller(self.users, caller_id)
        ws_id = parse_uuid(workspace_id, "workspaceId")
        if await self.workspaces.get(ws_id) is None:
            raise NotFoundError("Workspace not found", code="workspace_not_found")
        await self.admin.ensure_manager(caller, ws_id)
        return ws_id

    @staticmethod
    def _check_role(role: Any) -> str:
        if role not in MEMBER_ROLES:
            raise ValidationError("Invalid role", details={"field": "role", "allowed": list(MEMBER_ROLES)})
        return role

    @staticmethod
    def _member_dict(member, user: Optional[SystemUser] = None) -> Dict[str, Any]:
        out = {
            "id": str(member.id),
            "workspace_id": str(member.workspace_id),
            "user_id": str(member.user_id),
            "role": member.role,
            "is_hidden": member.is_hidden,
            "created_at": _iso(member.created_at),
        }
        if user is not None:
            out["user"] = {"id": str(user.id), "name": user.name, "email": user.email, "profile": user.profile}
        return out

    async def list(self, caller_id: str, workspace_id: str) -> List[Dict[str, Any]]:
        ws_id = await self._authorize(caller_id, workspace_id)
        return [self._member_dict(i["member"], i["user"]) for i in await self.workspaces.list_members(ws_id)]

    async def add(self, caller_id: str, workspace_id: str, user_id: Optional[str], role: Optional[str]) -> Dict[str, Any]:
        ws_id = await self._authorize(caller_id, workspace_id)
        if not user_id or not role:
            raise MissingFieldError(*[f for f, v in (("userId", user_id), ("role", role)) if not v])
        self._check_role(role)
        user = await self.users.get(parse_uuid(user_id, "userId"))
        if user is None:
            raise NotFoundError("User not found", code="user_not_found")
        if await self.workspaces.member_role(ws_id, user.id) is not None:
            raise ConflictError("User is already a member of this workspace", code="already_member")
        member = await self.workspaces.add_member(ws_id, user.id, role)
        await self.session.commit()
        logger.info("Workspace member added", workspace_id=workspace_id, user_id=user_id, role=role)
        return self._member_dict(member, user)

    async def _member(self, ws_id: UUID, member_id: Optional[str]):
        if not member_id:
            raise MissingFieldError("memberId")
        member = await self.workspaces.get_member(ws_id, parse_uuid(member_id, "memberId"))
        if member is None:
            raise NotFoundError("Workspace member not found", code="member_not_found")
        return member

    async def update(
        self, caller_id: str, workspace_id: str, member_id: Optional[str], updates: Optional[Dict[str, Any]]
    ) -> None:
        ws_id = await self._authorize(caller_id, workspace_id)
        if not updates:
            raise MissingFieldError("updates")
        unknown = sorted(set(updates) - set(_MEMBER_UPDATABLE))
        if unknown:
            raise ValidationError("Unsupported member fields", details={"fields": unknown})
        member = await self._member(ws_id, member_id)
        if "role" in updates:
            member.role = self._check_role(updates["role"])
        if "is_hidden" in updates:
            if not isinstance(updates["is_hidden"], bool):
                raise ValidationError("is_hidden must be a boolean", details={"field": "is_hidden"})
            member.is_hidden = updates["is_hidden"]
        await self.session.commit()
        logger.info("Workspace member updated", workspace_id=workspace_id, member_id=member_id, fields=sorted(updates))

    async def remove(self, caller_id: str, workspace_id: str, member_id: Optional[str]) -> None:
        ws_id = await self._authorize(caller_id, workspace_id)
        member = await self._member(ws_id, member_id)
        await self.workspaces.remove_member(member)
        await self.session.commit()
        logger.info("Workspace member removed", workspace_id=workspace_id, member_id=member_id)


DEFAULT_CUSTOMIZATION: Dict[str, Any] = {
    "logo_url": None,
    "background_color": "hsl(240, 10%, 3.9%)",
    "primary_color": "hsl(47.9, 95.8%, 53.1%)",
    "header_color": "hsl(240, 5.9%, 10%)",
    "sidebar_color": "hsl(240, 5.9%, 10%)",
}
COLOR_FIELDS = ("background_color", "primary_color", "header_color", "sidebar_color")
_COLOR = re.compile(
    r"^(#(?:[0-9a-fA-F]{3}){1,2}|hsl\(\s*\d+(\.\d+)?\s*,\s*\d+(\.\d+)?%\s*,\s*\d+(\.\d+)?%\s*\))$"
)


class SystemCustomizationService:
    """Platform branding; readable by anyone, writable by masters."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.repo = SystemCustomizationRepository(session)

    @staticmethod
    def _as_dict(row) -> Dict[str, Any]:
        return {
            "logo_url": row.logo_url,
            **{f: getattr(row, f) for f in COLOR_FIELDS},
            "updated_at": _iso(row.updated_at),
        }

    async def get(self) -> Dict[str, Any]:
        row = await self.repo.get()
        return self._as_dict(row) if row else dict(DEFAULT_CUSTOMIZATION)

    async def update(self, caller_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = await self.users.get(parse_uuid(caller_id, "x-system-user-id"))
        if user is None or user.profile != MASTER_PROFILE:
            log_security_event("customization_update_denied", user_id=caller_id)
            raise ForbiddenError("Only master users can change the system customization")
        for field in COLOR_FIELDS:
            value = changes.get(field)
            if value is not None and not _COLOR.match(value.strip()):
                raise ValidationError("Invalid color", details={"field": field, "value": value})

        current = await self.get()
        values = {f: current[f] for f in ("logo_url", *COLOR_FIELDS)}
        for key, value in changes.items():
            if key in COLOR_FIELDS and value is not None:
                values[key] = value.strip()
            elif key == "logo_url":
                values[key] = (value or "").strip() or None
        row = await self.repo.upsert(values)
        await self.session.commit()
        logger.info("System customization updated", user_id=caller_id, fields=sorted(changes))
        return self._as_dict(row)

    async def reset(self, caller_id: str) -> Dict[str, Any]:
        return await self.update(caller_id, dict(DEFAULT_CUSTOMIZATION))
