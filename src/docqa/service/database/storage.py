"""RavenDB implementation of the Storage protocol."""

import logging
from datetime import datetime
from typing import Any

from ravendb import DocumentStore

from docqa.service.database.config import (
    CHUNKS_COLLECTION,
    CONVERSATIONS_COLLECTION,
    DOCUMENTS_COLLECTION,
    FEEDBACK_COLLECTION,
    IMAGES_COLLECTION,
    MESSAGES_COLLECTION,
)
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


class StoredEntity:
    """Attribute bag handed to a RavenDB session.

    Sessions track entities by identity, so every store gets a fresh plain
    object built from the dataclass's to_dict() output.
    """

    def __init__(self, **values: Any) -> None:
        self.__dict__.update(values)


class RavenDBStorage:
    """Stores documents, chunks, images, conversations, messages and feedback
    in one RavenDB collection each.

    Every entity is stored under its own id as the document key. Loads go
    through RQL with object_type=dict and are converted back with from_dict.
    """

    def __init__(self, store: DocumentStore) -> None:
        """Initialize with an initialized DocumentStore.

        Args:
            store: DocumentStore bound to the target database
        """
        self.store = store

    def _store(self, entity: Any, collection: str) -> None:
        with self.store.open_session() as session:
            record = StoredEntity(**entity.to_dict())
            session.store(record, entity.id)

            # Set the collection in document metadata
            metadata = session.advanced.get_metadata_for(record)
            metadata["@collection"] = collection

            session.save_changes()

    def _query(self, rql: str, **parameters: Any) -> list[dict[str, Any]]:
        with self.store.open_session() as session:
            query = session.advanced.raw_query(rql, object_type=dict)
            for name, value in parameters.items():
                query = query.add_parameter(name, value)
            return list(query)

    def insert_document(self, document: Document) -> Document:
        self._store(document, DOCUMENTS_COLLECTION)
        return document

    def get_document(self, document_id: str) -> Document | None:
        results = self._query(f"from {DOCUMENTS_COLLECTION} where id() = $id", id=document_id)
        return Document.from_dict(results[0]) if results else None

    def list_documents(self) -> list[Document]:
        results = self._query(f"from {DOCUMENTS_COLLECTION} order by upload_date desc")
        return [Document.from_dict(result) for result in results]

    def delete_document(self, document_id: str) -> bool:
        """Delete a document and cascade to its chunks and images.

        Args:
            document_id: Id of the document to delete

        Returns:
            bool: False if no such document exists
        """
        if self.get_document(document_id) is None:
            return False

        chunk_ids = [
            r["id"]
            for r in self._query(
                f"from {CHUNKS_COLLECTION} where document_id = $id", id=document_id
            )
        ]
        image_ids = [
            r["id"]
            for r in self._query(
                f"from {IMAGES_COLLECTION} where document_id = $id", id=document_id
            )
        ]

        self._delete_keys([*chunk_ids, *image_ids, document_id])

        logger.info(
            f"🗑️  Deleted document {document_id} "
            f"({len(chunk_ids)} chunks, {len(image_ids)} images)"
        )
        return True

    def insert_chunk(self, chunk: Chunk) -> Chunk:
        self._store(chunk, CHUNKS_COLLECTION)
        return chunk

    def list_chunks(self, document_id: str | None = None) -> list[Chunk]:
        if document_id is None:
            results = self._query(f"from {CHUNKS_COLLECTION}")
        else:
            results = self._query(
                f"from {CHUNKS_COLLECTION} where document_id = $id", id=document_id
            )
        return [Chunk.from_dict(result) for result in results]

    def count_chunks(self) -> int:
        return len(self._query(f"from {CHUNKS_COLLECTION}"))

    def insert_image(self, image: DocumentImage) -> DocumentImage:
        self._store(image, IMAGES_COLLECTION)
        return image

    def list_images(self, document_id: str) -> list[DocumentImage]:
        results = self._query(
            f"from {IMAGES_COLLECTION} where document_id = $id", id=document_id
        )
        return [DocumentImage.from_dict(result) for result in results]

    def _delete_keys(self, keys: list[str]) -> None:
        with self.store.open_session() as session:
            for key in keys:
                session.delete(key)
            session.save_changes()

    # Conversations and chat history
    def insert_conversation(self, conversation: Conversation) -> Conversation:
        self._store(conversation, CONVERSATIONS_COLLECTION)
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        results = self._query(
            f"from {CONVERSATIONS_COLLECTION} where id() = $id", id=conversation_id
        )
        return Conversation.from_dict(results[0]) if results else None

    def update_conversation(self, conversation: Conversation) -> Conversation:
        conversation.updated_at = utcnow()
        return self.insert_conversation(conversation)

    def list_conversations(self, user_id: str) -> list[Conversation]:
        results = self._query(
            f"from {CONVERSATIONS_COLLECTION} where user_id = $user_id order by updated_at desc",
            user_id=user_id,
        )
        return [Conversation.from_dict(result) for result in results]

    def count_active_conversations(self, user_id: str) -> int:
        results = self._query(
            f"from {CONVERSATIONS_COLLECTION} where user_id = $user_id and is_active = true",
            user_id=user_id,
        )
        return len(results)

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and cascade to its messages.

        Returns:
            bool: False if no such conversation exists
        """
        if self.get_conversation(conversation_id) is None:
            return False

        message_ids = [
            r["id"]
            for r in self._query(
                f"from {MESSAGES_COLLECTION} where conversation_id = $id", id=conversation_id
            )
        ]
        self._delete_keys([*message_ids, conversation_id])
        logger.info(f"🗑️  Deleted conversation {conversation_id} ({len(message_ids)} messages)")
        return True

    def insert_message(self, message: ChatMessage) -> ChatMessage:
        self._store(message, MESSAGES_COLLECTION)
        return message

    def list_conversation_messages(self, conversation_id: str) -> list[ChatMessage]:
        results = self._query(
            f"from {MESSAGES_COLLECTION} where conversation_id = $id order by timestamp",
            id=conversation_id,
        )
        return [ChatMessage.from_dict(result) for result in results]

    def list_user_messages(self, user_id: str, limit: int) -> list[ChatMessage]:
        results = self._query(
            f"from {MESSAGES_COLLECTION} where user_id = $user_id "
            f"order by timestamp desc limit {int(limit)}",
            user_id=user_id,
        )
        return [ChatMessage.from_dict(result) for result in reversed(results)]

    def delete_messages_before(self, cutoff: datetime) -> int:
        # Timestamps are stored as UTC ISO-8601 strings, which sort chronologically
        message_ids = [
            r["id"]
            for r in self._query(
                f"from {MESSAGES_COLLECTION} where timestamp < $cutoff",
                cutoff=cutoff.isoformat(),
            )
        ]
        if message_ids:
            self._delete_keys(message_ids)
            logger.info(f"🧹 Deleted {len(message_ids)} chat messages older than {cutoff:%Y-%m-%d}")
        return len(message_ids)

    # Feedback
    def insert_feedback(self, feedback: Feedback) -> Feedback:
        self._store(feedback, FEEDBACK_COLLECTION)
        return feedback

    def list_feedback(self) -> list[Feedback]:
        results = self._query(f"from {FEEDBACK_COLLECTION} order by submitted_at desc")
        return [Feedback.from_dict(result) for result in results]

    def close(self) -> None:
        self.store.close()
