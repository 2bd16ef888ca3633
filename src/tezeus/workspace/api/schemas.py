from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrgCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)


class WorkspaceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    workspace_id: str = Field(..., min_length=1, alias="workspaceId")


class WorkspaceManageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(..., min_length=1)
    workspace_id: Optional[str] = Field(None, alias="workspaceId")
    name: Optional[str] = Field(None, max_length=200)
    cnpj: Optional[str] = Field(None, max_length=32)
    connection_limit: Optional[int] = Field(None, ge=1, alias="connectionLimit")


class MemberManageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: str = Field(..., min_length=1)
    workspace_id: str = Field(..., min_length=1, alias="workspaceId")
    user_id: Optional[str] = Field(None, alias="userId")
    role: Optional[str] = None
    member_id: Optional[str] = Field(None, alias="memberId")
    updates: Optional[Dict[str, Any]] = None


class CustomizationUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    logo_url: Optional[str] = None
    background_color: Optional[str] = Field(None, max_length=64)
    primary_color: Optional[str] = Field(None, max_length=64)
    header_color: Optional[str] = Field(None, max_length=64)
    sidebar_color: Optional[str] = Field(None, max_length=64)
    reset: bool = False
