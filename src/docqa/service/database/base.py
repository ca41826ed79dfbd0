"""Storage protocol shared by the RavenDB and in-memory backends."""

from datetime import datetime
from typing import Protocol

from docqa.service.database.models import (
    ChatMessage,
    Chunk,
    Conversation,
    Document,
    DocumentImage,
    Feedback,
)


class Storage(Protocol):
    """Persistence capability used by ingestion, retrieval and answering.

    Implementations are synchronous. Inserts store whole entities, and
    delete_document removes the document together with its chunks and images.
    """

    def insert_document(self, document: Document) -> Document: ...

    def get_document(self, document_id: str) -> Document | None: ...

    def list_documents(self) -> list[Document]:
        """Return all documents, most recently uploaded first."""
        ...

    def delete_document(self, document_id: str) -> bool:
        """Delete a document and everything derived from it.

        Returns:
            bool: False if the document did not exist
        """
        ...

    def insert_chunk(self, chunk: Chunk) -> Chunk: ...

    def list_chunks(self, document_id: str | None = None) -> list[Chunk]:
        """Return all chunks, or only those of one document."""
        ...

    def count_chunks(self) -> int: ...

    def insert_image(self, image: DocumentImage) -> DocumentImage: ...

    def list_images(self, document_id: str) -> list[DocumentImage]: ...

    # Conversations and chat history
    def insert_conversation(self, conversation: Conversation) -> Conversation: ...

    def get_conversation(self, conversation_id: str) -> Conversation | None: ...

    def update_conversation(self, conversation: Conversation) -> Conversation:
        """Store the conversation again with a fresh updated_at."""
        ...

    def list_conversations(self, user_id: str) -> list[Conversation]:
        """Return a user's conversations, most recently updated first."""
        ...

    def count_active_conversations(self, user_id: str) -> int: ...

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and its messages.

        Returns:
            bool: False if the conversation did not exist
        """
        ...

    def insert_message(self, message: ChatMessage) -> ChatMessage: ...

    def list_conversation_messages(self, conversation_id: str) -> list[ChatMessage]:
        """Return the messages of one conversation, oldest first."""
        ...

    def list_user_messages(self, user_id: str, limit: int) -> list[ChatMessage]:
        """Return a user's newest messages across conversations, oldest first."""
        ...

    def delete_messages_before(self, cutoff: datetime) -> int:
        """Delete every message older than cutoff and return how many were removed."""
        ...

    # Feedback
    def insert_feedback(self, feedback: Feedback) -> Feedback: ...

    def list_feedback(self) -> list[Feedback]:
        """Return all feedback, newest first."""
        ...
