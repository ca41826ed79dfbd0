"""Application-wide constants and defaults for docqa.

This module provides a single source of truth for configuration defaults,
magic numbers, and other constants used throughout the application. Getters
read the environment at call time so tests and deployments can override them.
"""

import os

# =============================================================================
# File Upload Limits
# =============================================================================
MAX_UPLOAD_SIZE_BYTES = 10 * 1024 * 1024  # 10MB per file
MAX_FILES_PER_UPLOAD = 10
ALLOWED_EXTENSIONS = {
    "pdf",
    "ppt",
    "pptx",
    "docx",
    "txt",
    "md",
    "xlsx",
    "xls",
    "html",
    "htm",
}

# =============================================================================
# Retrieval Settings
# =============================================================================
DEFAULT_CHUNK_SIZE = 1000  # Characters per chunk
DEFAULT_SIMILARITY_THRESHOLD = 0.6  # Minimum cosine similarity to cite a chunk
DEFAULT_TOP_K = 5  # Maximum number of chunks used as context

# =============================================================================
# Ingestion Settings
# =============================================================================
IMAGE_CONTEXT_MAX_LENGTH = 500  # Characters of surrounding HTML text per image
DEFAULT_IMAGE_FETCH_TIMEOUT = 10.0  # Seconds for remote <img> downloads
DEFAULT_MAX_PROVIDER_CONCURRENCY = 8  # Concurrent embed/describe calls per file
IMAGE_DESCRIPTION_FALLBACK = "Unable to generate image description"
IMAGE_DESCRIPTION_PROMPT = (
    "Describe this image in detail, focusing on UI elements, interface components, "
    "navigation elements, buttons, menus, text, and any other important visual elements. "
    "This description will help users understand website navigation and interface layout."
)

# =============================================================================
# Provider Settings
# =============================================================================
DEFAULT_PROVIDER_TIMEOUT = 60.0  # Seconds per backend call
DEFAULT_LLM_SERVICE = "gemini"
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_PRODUCT_NAME = "this platform"

# Preferred vision model per service (tried first for image descriptions)
VISION_DEFAULTS = {
    "gemini": "gemini-2.0-flash-exp",
    "ollama": "llava",
}

# =============================================================================
# Conversation Settings
# =============================================================================
MAX_ACTIVE_CONVERSATIONS = 5  # Per user; a new question beyond this is refused
CHAT_HISTORY_RETENTION_DAYS = 7  # Older messages are purged when history is read
CHAT_HISTORY_LIMIT = 50  # Most recent messages returned as history
CONVERSATION_TITLE_MAX_LENGTH = 50
FEEDBACK_RATING_RANGE = (1, 5)

# =============================================================================
# Display Settings
# =============================================================================
CONTENT_PREVIEW_LENGTH = 200  # Characters to show in content previews

# =============================================================================
# Default URLs and Hosts
# =============================================================================
DEFAULT_STORAGE_BACKEND = "ravendb"
DEFAULT_RAVENDB_URL = "http://localhost:8080"
DEFAULT_RAVENDB_DATABASE = "docqa"
DEFAULT_UPLOAD_FOLDER = "/tmp/docqa_uploads"


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return float(value)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


def get_llm_service_name() -> str:
    """Get the configured model backend name ("gemini" or "ollama")."""
    return os.getenv("LLM_SERVICE", DEFAULT_LLM_SERVICE)


def get_chunk_size() -> int:
    """Get the chunk size in characters (env CHUNK_SIZE, default 1000)."""
    return _env_int("CHUNK_SIZE", DEFAULT_CHUNK_SIZE)


def get_similarity_threshold() -> float:
    """Get the retrieval similarity threshold (env SIMILARITY_THRESHOLD, default 0.6)."""
    return _env_float("SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD)


def get_top_k() -> int:
    """Get the number of chunks returned per query (env TOP_K, default 5)."""
    return _env_int("TOP_K", DEFAULT_TOP_K)


def get_provider_timeout() -> float:
    """Get the per-call provider timeout in seconds."""
    return _env_float("PROVIDER_TIMEOUT_SECONDS", DEFAULT_PROVIDER_TIMEOUT)


def get_max_provider_concurrency() -> int:
    """Get the maximum number of concurrent provider calls during ingestion."""
    return max(1, _env_int("MAX_PROVIDER_CONCURRENCY", DEFAULT_MAX_PROVIDER_CONCURRENCY))


def get_image_fetch_timeout() -> float:
    """Get the timeout for downloading remote images referenced by HTML files."""
    return _env_float("IMAGE_FETCH_TIMEOUT_SECONDS", DEFAULT_IMAGE_FETCH_TIMEOUT)


def get_product_name() -> str:
    """Get the product name the assistant introduces itself for."""
    return os.getenv("DOCQA_PRODUCT_NAME", DEFAULT_PRODUCT_NAME)


def get_vision_model(service: str | None = None) -> str:
    """Get the preferred vision model for image descriptions.

    Checks the VISION_MODEL environment variable first, then falls back
    to service-specific defaults.

    Args:
        service: The LLM service name ("gemini" or "ollama").
                If None, uses LLM_SERVICE env var or defaults to "gemini".

    Returns:
        str: The vision model name to prefer.
    """
    env_model = os.getenv("VISION_MODEL")
    if env_model:
        return env_model

    if service is None:
        service = get_llm_service_name()

    return VISION_DEFAULTS.get(service, VISION_DEFAULTS[DEFAULT_LLM_SERVICE])
