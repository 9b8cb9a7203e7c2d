"""Pydantic models for the GalaxyGPT API."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ConversationTurnModel(BaseModel):
    role: Literal["user", "assistant"] = Field(..., description="Author of the earlier message")
    content: str = Field(..., description="Text of the earlier message")


class AskPayload(BaseModel):
    prompt: str = Field(..., description="The question to ask the AI", examples=["What is the deity?"])
    model: Optional[str] = Field(default="gpt-4o-mini", description="The model to use for the request")
    username: Optional[str] = Field(
        default=None,
        description="The username of the user asking the question; hashed before use",
    )
    max_length: Optional[int] = Field(default=None, ge=1, description="The maximum amount of tokens to generate")
    max_context_length: Optional[int] = Field(
        default=None,
        ge=1,
        description="The maximum amount of pages to pull from the embeddings database (server default: 5)",
    )
    conversation: Optional[List[ConversationTurnModel]] = Field(
        default=None,
        description="Earlier turns of the conversation, oldest first",
    )


class AskResponse(BaseModel):
    answer: str
    context: str
    duration: str = Field(..., description="Request duration in milliseconds")
    version: str
    question_tokens: str = Field(..., description="Tokens sent to the chat model")
    response_tokens: str = Field(..., description="Tokens in the generated answer")
    context_tokens: str = Field(..., description="Tokens of retrieved context")


class ErrorResponse(BaseModel):
    detail: str
    correlation_id: Optional[str] = None
