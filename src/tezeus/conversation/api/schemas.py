from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ConversationActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    conversation_id: str = Field(..., min_length=1, alias="conversationId")
