"""Owner chat models."""

from datetime import datetime
from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """Message row in the chats table."""
    message_id: str = Field(..., description="Message ID (ULID)")
    text: str = Field(..., min_length=1, description="Message text as entered")
    timestamp: datetime = Field(..., description="When the message was sent")

    model_config = {"extra": "ignore"}
