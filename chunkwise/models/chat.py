"""Conversation models for the question-answering loop."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class MessageRole(str, Enum):  # noqa: UP042
    HUMAN = "human"
    AI = "ai"


class ChatMessage(BaseModel):
    """One turn of the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
