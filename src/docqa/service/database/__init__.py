"""Persistence for documents, chunks, images, conversations and feedback.

This package provides a unified interface for storage:
- Entities (Document, Chunk, DocumentImage, Conversation, ChatMessage, Feedback)
- The Storage protocol and its RavenDB and in-memory implementations
- RavenDB administration (create, delete, count)
- Vector math (cosine_similarity)

Usage:
    from docqa.service.database import create_storage

    storage = create_storage()            # STORAGE_BACKEND env, "ravendb" by default
    storage = create_storage("memory")
"""

import logging

from docqa.service.database.base import Storage
from docqa.service.database.config import RavenDBConfig, StorageConfig
from docqa.service.database.memory import InMemoryStorage
from docqa.service.database.models import (
    ChatMessage,
    Chunk,
    Conversation,
    Document,
    DocumentImage,
    Feedback,
)
from docqa.service.database.operations import (
    count_documents,
    create_database,
    create_document_store,
    database_exists,
    delete_database,
)
from docqa.service.database.storage import RavenDBStorage
from docqa.service.database.utils import cosine_similarity

logger = logging.getLogger(__name__)


def create_storage(
    backend: str | None = None,
    url: str | None = None,
    database: str | None = None,
) -> Storage:
    """Create the configured storage backend.

    Args:
        backend: "ravendb" or "memory" (default: STORAGE_BACKEND env)
        url: RavenDB server URL override
        database: RavenDB database name override

    Returns:
        Storage: A ready-to-use storage implementation
    """
    backend = (backend or StorageConfig.get_backend()).lower()

    if backend == "memory":
        logger.info("📦 Using in-memory storage")
        return InMemoryStorage()

    if backend == "ravendb":
        url = url or RavenDBConfig.get_url()
        database = database or RavenDBConfig.get_database_name()
        store = create_document_store(url, database)
        logger.info(f"📦 Using RavenDB storage: {url}/{database}")
        return RavenDBStorage(store)

    raise ValueError(f"Unsupported storage backend: {backend}")


__all__ = [
    # Entities
    "Document",
    "Chunk",
    "DocumentImage",
    "Conversation",
    "ChatMessage",
    "Feedback",
    # Storage
    "Storage",
    "RavenDBStorage",
    "InMemoryStorage",
    "create_storage",
    # Config
    "RavenDBConfig",
    "StorageConfig",
    # Operations
    "create_document_store",
    "database_exists",
    "create_database",
    "delete_database",
    "count_documents",
    # Utils
    "cosine_similarity",
]
