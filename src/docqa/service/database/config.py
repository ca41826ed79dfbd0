"""Configuration for the storage backends."""

import os

from dotenv import load_dotenv

from docqa.constants import (
    DEFAULT_RAVENDB_DATABASE,
    DEFAULT_RAVENDB_URL,
    DEFAULT_STORAGE_BACKEND,
    DEFAULT_UPLOAD_FOLDER,
)

# Load environment variables
load_dotenv()

# RavenDB collection names
DOCUMENTS_COLLECTION = "Documents"
CHUNKS_COLLECTION = "DocumentChunks"
IMAGES_COLLECTION = "DocumentImages"
CONVERSATIONS_COLLECTION = "Conversations"
MESSAGES_COLLECTION = "ChatMessages"
FEEDBACK_COLLECTION = "Feedbacks"


class RavenDBConfig:
    """Configuration class for RavenDB connection details."""

    @staticmethod
    def get_url() -> str:
        """Get the RavenDB server URL from environment variables.

        Returns:
            str: RavenDB server URL (default: http://localhost:8080)
        """
        return os.getenv("RAVENDB_URL", DEFAULT_RAVENDB_URL)

    @staticmethod
    def get_database_name() -> str:
        """Get the RavenDB database name from environment variables.

        Returns:
            str: Database name (default: docqa)
        """
        return os.getenv("RAVENDB_DATABASE", DEFAULT_RAVENDB_DATABASE)


class StorageConfig:
    """Configuration for selecting a storage backend and the upload folder."""

    @staticmethod
    def get_backend() -> str:
        """Get the storage backend name: "ravendb" (default) or "memory"."""
        return os.getenv("STORAGE_BACKEND", DEFAULT_STORAGE_BACKEND).strip().lower()

    @staticmethod
    def get_upload_folder() -> str:
        """Get the directory uploaded files are written to."""
        return os.getenv("UPLOAD_FOLDER", DEFAULT_UPLOAD_FOLDER)
