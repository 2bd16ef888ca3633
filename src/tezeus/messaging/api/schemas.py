from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class WorkspaceRef(_Body):
    workspace_id: str = Field(..., min_length=1, alias="workspaceId")


class OptionalWorkspaceRef(_Body):
    workspace_id: Optional[str] = Field(default=None, alias="workspaceId")


class SetDefaultInstanceRequest(_Body):
    workspace_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("workspaceId", "orgId", "workspace_id"),
    )
    instance: Optional[str]


class SaveEvolutionConfigRequest(_Body):
    workspace_id: str = Field(..., min_length=1, alias="workspaceId")
    evolution_url: str = Field(..., min_length=1, alias="evolutionUrl")
    evolution_api_key: str = Field(..., min_length=1, alias="evolutionApiKey")


class InstanceRequest(_Body):
    instance: Optional[str] = None


class TestWebhookRequest(_Body):
    phone_number: Optional[str] = None
    workspace_id: Optional[str] = None


class AiChatRequest(_Body):
    message: str
    conversation_id: str = Field(..., min_length=1, alias="conversationId")
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
