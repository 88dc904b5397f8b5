"""Request bodies for the orchestration API."""

from typing import Literal

from pydantic import BaseModel, Field


class ToolCallRequest(BaseModel):
    """One tool invocation from the reasoning loop."""

    user_id: str
    conversation_id: str
    timezone: str | None = None
    arguments: dict[str, object] = Field(default_factory=dict)


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ClassifyRequest(BaseModel):
    message: str = Field(min_length=1)
    history: list[HistoryMessage] = Field(default_factory=list)
    user_id: str | None = None
    conversation_id: str | None = None


class ResolveRequest(BaseModel):
    items: list[str] = Field(min_length=1)
    portions: list[str] = Field(default_factory=list)
    user_id: str | None = None


class ConfirmRequest(BaseModel):
    user_id: str
    proposal_id: str


class DeclineRequest(BaseModel):
    user_id: str
