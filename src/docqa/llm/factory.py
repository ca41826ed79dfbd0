"""Factory functions for creating model backends and failover providers."""

import logging
import os

from dotenv import load_dotenv

from docqa.constants import DEFAULT_OLLAMA_HOST, get_llm_service_name
from docqa.llm.base import ModelBackend, ModelConfig
from docqa.llm.failover import ModelProvider
from docqa.llm.gemini import GeminiBackend
from docqa.llm.ollama import OllamaBackend

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def parse_model_list(value: str | None) -> list[ModelConfig] | None:
    """Parse a comma-separated model list such as "gemini-2.5-flash,gemini-1.5-pro".

    Returns None for a missing or blank value so callers fall back to defaults.
    """
    if not value:
        return None
    names = [name.strip() for name in value.split(",") if name.strip()]
    return [ModelConfig(name) for name in names] or None


def get_model_backend(config: dict | None = None) -> ModelBackend:
    """Factory function to create a model backend instance.

    Args:
        config: Optional configuration dictionary. If None, uses environment variables.
                Expected keys:
                - 'service': Service type (default: from LLM_SERVICE env, or "gemini")
                - 'host': Ollama host URL (default: from OLLAMA_HOST env)
                - 'api_key': Gemini API key (default: from GEMINI_API_KEY env)

    Returns:
        ModelBackend: An instance implementing the ModelBackend protocol.
    """
    if config is None:
        config = {}

    service_type = config.get("service", get_llm_service_name())

    if service_type == "ollama":
        host = config.get("host", os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST))
        return OllamaBackend(host=host)

    if service_type == "gemini":
        return GeminiBackend(api_key=config.get("api_key"))

    raise ValueError(f"Unsupported service type: {service_type}")


def get_model_provider(config: dict | None = None) -> ModelProvider:
    """Factory function to create the failover model provider.

    Args:
        config: Optional configuration dictionary. In addition to the keys
                accepted by get_model_backend:
                - 'generation_models': list of model names (default: GENERATION_MODELS env)
                - 'embedding_models': list of model names (default: EMBEDDING_MODELS env)
                - 'timeout': per-call timeout in seconds (default: PROVIDER_TIMEOUT_SECONDS env)

    Returns:
        ModelProvider: Embedding and generation providers over one backend.
    """
    if config is None:
        config = {}

    backend = get_model_backend(config)

    generation_models = config.get("generation_models")
    if generation_models is not None:
        generation_models = [ModelConfig(name) for name in generation_models]
    else:
        generation_models = parse_model_list(os.getenv("GENERATION_MODELS"))

    embedding_models = config.get("embedding_models")
    if embedding_models is not None:
        embedding_models = [ModelConfig(name) for name in embedding_models]
    else:
        embedding_models = parse_model_list(os.getenv("EMBEDDING_MODELS"))

    provider = ModelProvider(
        backend,
        generation_models=generation_models,
        embedding_models=embedding_models,
        timeout=config.get("timeout"),
    )
    logger.info(
        f"✅ Model provider ready: backend={backend.name}, "
        f"generation={[m.name for m in provider.generation.models]}, "
        f"embedding={[m.name for m in provider.embedding.models]}"
    )
    return provider
