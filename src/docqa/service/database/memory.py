"""In-memory storage backend for tests, dry runs and single-process use."""

import logging
import threading
from datetime import datetime

from docqa.service.database.models import (
    ChatMessage,
    Chunk,
    Conversation,
    Document,
    DocumentImage,
    Feedback,
    utcnow,
)

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """Dictionary-backed implementation of the Storage protocol.

    Chunks keep insertion order. All access goes through one lock so that
    concurrent ingestion tasks and request threads see consistent data.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._documents: dict[str, Document] = {}
        self._chunks: list[Chunk] = []
        self._images: list[DocumentImage] = []
        self._conversations: dict[str, Conversation] = {}
        self._messages: list[ChatMessage] = []
        self._feedback: list[Feedback] = []

    def insert_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.id] = document
        return document

    def get_document(self, document_id: str) -> Document | None:
        with self._lock:
            return self._documents.get(document_id)

    def list_documents(self) -> list[Document]:
        with self._lock:
            documents = list(self._documents.values())
        return sorted(documents, key=lambda d: d.upload_date, reverse=True)

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            if self._documents.pop(document_id, None) is None:
                return False
            self._chunks = [c for c in self._chunks if c.document_id != document_id]
            self._images = [i for i in self._images if i.document_id != document_id]
        logger.info(f"🗑️  Deleted document {document_id} with its chunks and images")
        return True

    def insert_chunk(self, chunk: Chunk) -> Chunk:
        with self._lock:
            self._chunks.append(chunk)
        return chunk

    def list_chunks(self, document_id: str | None = None) -> list[Chunk]:
        with self._lock:
            if document_id is None:
                return list(self._chunks)
            return [c for c in self._chunks if c.document_id == document_id]

    def count_chunks(self) -> int:
        with self._lock:
            return len(self._chunks)

    def insert_image(self, image: DocumentImage) -> DocumentImage:
        with self._lock:
            self._images.append(image)
        return image

    def list_images(self, document_id: str) -> list[DocumentImage]:
        with self._lock:
            return [i for i in self._images if i.document_id == document_id]

    def insert_conversation(self, conversation: Conversation) -> Conversation:
        with self._lock:
            self._conversations[conversation.id] = conversation
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        with self._lock:
            return self._conversations.get(conversation_id)

    def update_conversation(self, conversation: Conversation) -> Conversation:
        conversation.updated_at = utcnow()
        return self.insert_conversation(conversation)

    def list_conversations(self, user_id: str) -> list[Conversation]:
        with self._lock:
            owned = [c for c in self._conversations.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.updated_at, reverse=True)

    def count_active_conversations(self, user_id: str) -> int:
        with self._lock:
            return sum(1 for c in self._conversations.values() if c.user_id == user_id and c.is_active)

    def delete_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            if self._conversations.pop(conversation_id, None) is None:
                return False
            self._messages = [m for m in self._messages if m.conversation_id != conversation_id]
        return True

    def insert_message(self, message: ChatMessage) -> ChatMessage:
        with self._lock:
            self._messages.append(message)
        return message

    def list_conversation_messages(self, conversation_id: str) -> list[ChatMessage]:
        with self._lock:
            messages = [m for m in self._messages if m.conversation_id == conversation_id]
        return sorted(messages, key=lambda m: m.timestamp)

    def list_user_messages(self, user_id: str, limit: int) -> list[ChatMessage]:
        with self._lock:
            messages = [m for m in self._messages if m.user_id == user_id]
        ordered = sorted(messages, key=lambda m: m.timestamp)
        return ordered[-limit:] if limit > 0 else []

    def delete_messages_before(self, cutoff: datetime) -> int:
        with self._lock:
            kept = [m for m in self._messages if m.timestamp >= cutoff]
            removed = len(self._messages) - len(kept)
            self._messages = kept
        return removed

    def insert_feedback(self, feedback: Feedback) -> Feedback:
        with self._lock:
            self._feedback.append(feedback)
        return feedback

    def list_feedback(self) -> list[Feedback]:
        with self._lock:
            feedback = list(self._feedback)
        return sorted(feedback, key=lambda f: f.submitted_at, reverse=True)
