"""
AI Chat Schemas

Pydantic models for the POST /ai/chat request/response cycle.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ChatHistoryItem(BaseModel):
    """A prior turn. Accepts ``text`` or ``content`` for the message body."""

    model_config = ConfigDict(extra="ignore")

    role: str = "user"
    text: str = ""

    @model_validator(mode="before")
    @classmethod
    def _accept_content_alias(cls, data: Any) -> Any:
        if isinstance(data, dict) and "text" not in data and "content" in data:
            data = {**data, "text": data["content"]}
        if isinstance(data, dict):
            data = {
                **data,
                "role": str(data.get("role") or "user"),
                "text": str(data.get("text") or ""),
            }
        return data


class ChatRequest(BaseModel):
    """Body of POST /ai/chat. A blank message is rejected with 400 by the route."""

    model_config = ConfigDict(extra="ignore")

    message: str = ""
    history: list[ChatHistoryItem] = Field(default_factory=list)

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("history", mode="before")
    @classmethod
    def _coerce_history(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]


class ChatResponse(BaseModel):
    reply: str
