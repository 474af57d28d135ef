"""Owner chat: a single shared message thread."""

from datetime import datetime, timezone
from typing import Callable

from ulid import ULID

from src.models.chat import ChatMessage
from src.services.providers import DocumentStore
from src.utils.errors import EmptyMessageError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

CHATS_COLLECTION = "chats"


class ChatService:
    """Reads and appends messages in the chats table."""

    def __init__(
        self,
        documents: DocumentStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._documents = documents
        self._clock = clock

    async def list_messages(self) -> list[ChatMessage]:
        """All messages, oldest first."""
        rows = await self._documents.list_all(CHATS_COLLECTION, order_by="timestamp")
        messages = [ChatMessage.model_validate(row) for row in rows]
        return sorted(messages, key=lambda message: message.timestamp)

    async def send_message(self, text: str) -> ChatMessage:
        """Append a message; blank text is rejected and nothing is written."""
        if not (text or "").strip():
            raise EmptyMessageError("Message text is empty")

        message = ChatMessage(message_id=str(ULID()), text=text, timestamp=self._clock())
        await self._documents.insert(CHATS_COLLECTION, message.model_dump(mode="json"))
        logger.info("Chat message sent", message_id=message.message_id, length=len(text))
        return message
