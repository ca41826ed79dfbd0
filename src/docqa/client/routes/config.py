"""Shared configuration for route modules."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from docqa.constants import ALLOWED_EXTENSIONS


@dataclass
class RouteConfig:
    """Configuration container for Flask route dependencies.

    Holds the storage, model provider and the services built on them so
    that route handlers never construct their own clients.
    """

    storage: Any = None
    provider: Any = None
    ingestor: Any = None
    conversations: Any = None
    upload_folder: Path | None = None
    allowed_extensions: set[str] = field(default_factory=lambda: set(ALLOWED_EXTENSIONS))


# Single shared config instance
_config = RouteConfig()


def get_config() -> RouteConfig:
    """Get the shared route configuration.

    Returns:
        RouteConfig instance with current settings
    """
    return _config


def init_config(
    storage: Any = None,
    provider: Any = None,
    ingestor: Any = None,
    conversations: Any = None,
    upload_folder: Path | None = None,
    allowed_extensions: set[str] | None = None,
) -> None:
    """Initialize the shared route configuration.

    Args:
        storage: Storage implementation
        provider: Failover model provider
        ingestor: DocumentIngestor used by the upload route
        conversations: ConversationService used by the chat and conversation routes
        upload_folder: Path to upload folder
        allowed_extensions: Accepted upload extensions (without dot)
    """
    if storage is not None:
        _config.storage = storage
    if provider is not None:
        _config.provider = provider
    if ingestor is not None:
        _config.ingestor = ingestor
    if conversations is not None:
        _config.conversations = conversations
    if upload_folder is not None:
        _config.upload_folder = upload_folder
    if allowed_extensions is not None:
        _config.allowed_extensions = allowed_extensions
