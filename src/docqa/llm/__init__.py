"""Model abstraction layer for docqa.

This package provides a unified interface for multiple model backends:
- GeminiBackend: Google Gemini API
- OllamaBackend: Local models via Ollama

Backends perform single raw calls; ModelProvider adds the failover across a
prioritized model list that the rest of the application relies on.

Usage:
    from docqa.llm import get_model_provider

    # Create provider from environment config
    provider = get_model_provider()

    # Or with explicit config
    provider = get_model_provider({"service": "ollama", "host": "http://localhost:11434"})
"""

from docqa.llm.base import ModelBackend, ModelConfig
from docqa.llm.factory import get_model_backend, get_model_provider
from docqa.llm.failover import (
    EmbeddingProvider,
    EmbeddingResult,
    GenerationProvider,
    GenerationResult,
    ModelProvider,
    is_rate_limit_error,
)
from docqa.llm.gemini import GeminiBackend
from docqa.llm.ollama import OllamaBackend

__all__ = [
    "ModelBackend",
    "ModelConfig",
    "ModelProvider",
    "EmbeddingProvider",
    "EmbeddingResult",
    "GenerationProvider",
    "GenerationResult",
    "GeminiBackend",
    "OllamaBackend",
    "get_model_backend",
    "get_model_provider",
    "is_rate_limit_error",
]
