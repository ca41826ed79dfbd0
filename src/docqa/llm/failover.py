"""Model failover for generation and embedding calls under rate limits.

Each provider walks a static, prioritized list of models. A rate-limited
attempt moves on to the next model; any other error is raised immediately,
since switching models will not fix a bad request or a bad API key. An
empty result counts as a failed attempt. The retry budget is the length of
the list (optionally capped by the caller): there is no backoff and no
unbounded retrying.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from docqa.constants import get_provider_timeout
from docqa.exceptions import AllModelsFailedError, ProviderTimeoutError
from docqa.llm.base import ModelBackend, ModelConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

# =============================================================================
# Default model lists (priority order)
# =============================================================================
GEMINI_GENERATION_MODELS = [
    ModelConfig("gemini-2.5-flash", rpm=1000, tpm=4_000_000, rpd=1500),
    ModelConfig("gemini-2.5-flash-lite", rpm=1000, tpm=4_000_000, rpd=1500),
    ModelConfig("gemini-2.0-flash-exp", rpm=10, tpm=250_000, rpd=50),
    ModelConfig("gemini-1.5-flash", rpm=15, tpm=1_000_000, rpd=200),
    ModelConfig("gemini-1.5-pro", rpm=10, tpm=250_000, rpd=50),
]

GEMINI_EMBEDDING_MODELS = [
    ModelConfig("text-embedding-004", rpm=1500, tpm=1_000_000),
    ModelConfig("text-embedding-003"),  # Backup
]

OLLAMA_GENERATION_MODELS = [ModelConfig("llama3")]
OLLAMA_EMBEDDING_MODELS = [ModelConfig("nomic-embed-text")]

DEFAULT_MODELS = {
    "gemini": (GEMINI_GENERATION_MODELS, GEMINI_EMBEDDING_MODELS),
    "ollama": (OLLAMA_GENERATION_MODELS, OLLAMA_EMBEDDING_MODELS),
}

RATE_LIMIT_MARKERS = ("quota", "rate limit", "resource exhausted", "resource_exhausted", "429")


def is_rate_limit_error(error: BaseException) -> bool:
    """Decide whether an error means "this model is rate limited".

    Args:
        error: Exception raised by a backend call

    Returns:
        bool: True for HTTP 429 or a quota/rate-limit message
    """
    for attribute in ("code", "status_code", "status"):
        value = getattr(error, attribute, None)
        if value == 429 or value == "429":
            return True

    message = str(error).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def order_models(models: list[ModelConfig], preferred_model: str | None = None) -> list[ModelConfig]:
    """Put the preferred model first, followed by the rest in declared order.

    A preferred model missing from the list is still tried first.
    """
    if not preferred_model:
        return list(models)

    preferred = next((m for m in models if m.name == preferred_model), ModelConfig(preferred_model))
    return [preferred] + [m for m in models if m.name != preferred_model]


@dataclass(frozen=True)
class EmbeddingResult:
    vector: list[float]
    model_used: str


@dataclass(frozen=True)
class GenerationResult:
    text: str
    model_used: str


async def run_with_failover(
    kind: str,
    models: list[ModelConfig],
    call: Callable[[str], Awaitable[T]],
    is_usable: Callable[[T], bool],
    preferred_model: str | None = None,
    max_retries: int | None = None,
    timeout: float | None = None,
) -> tuple[T, str]:
    """Try models in order until one returns a usable result.

    Args:
        kind: Label used in logs and errors ("generation" or "embedding")
        models: Prioritized model list
        call: Coroutine factory performing one backend call for a model name
        is_usable: Success criterion for a returned result
        preferred_model: Model to try first
        max_retries: Optional cap on the number of attempts
        timeout: Per-attempt timeout in seconds (None waits indefinitely)

    Returns:
        tuple: (result, model name that produced it)

    Raises:
        AllModelsFailedError: If every attempt was rate limited or empty
        ProviderTimeoutError: If an attempt timed out
        Exception: Any non-rate-limit backend error, unchanged
    """
    candidates = order_models(models, preferred_model)
    limit = len(candidates) if max_retries is None else min(max_retries, len(candidates))

    last_error: BaseException | None = None
    attempted: list[str] = []
    only_rate_limited = True

    for attempt, config in enumerate(candidates[:limit], start=1):
        attempted.append(config.name)
        logger.info(f"📡 Trying {kind} model: {config.name} (attempt {attempt}/{limit})")

        try:
            result = await asyncio.wait_for(call(config.name), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"❌ Model {config.name} timed out after {timeout}s")
            raise ProviderTimeoutError(config.name, timeout or 0.0) from e
        except Exception as e:
            last_error = e
            logger.error(f"❌ Model {config.name} failed: {e}")
            if is_rate_limit_error(e):
                logger.warning(f"⚠️  Rate limit hit for {config.name}, trying next {kind} model...")
                continue
            raise

        if is_usable(result):
            logger.info(f"✅ Successfully completed {kind} using: {config.name}")
            return result, config.name

        only_rate_limited = False
        logger.warning(f"⚠️  Model {config.name} returned an empty result, trying next {kind} model...")

    raise AllModelsFailedError(
        kind,
        last_error,
        attempted,
        rate_limited=bool(attempted) and last_error is not None and only_rate_limited,
    )


def _resolve_timeout(timeout: float | None) -> float | None:
    if timeout is None:
        timeout = get_provider_timeout()
    return timeout if timeout > 0 else None


class EmbeddingProvider:
    """Embeds text, failing over across embedding models on rate limits."""

    def __init__(
        self,
        backend: ModelBackend,
        models: list[ModelConfig],
        timeout: float | None = None,
    ) -> None:
        self.backend = backend
        self.models = list(models)
        self.timeout = _resolve_timeout(timeout)

    async def embed(
        self,
        text: str,
        preferred_model: str | None = None,
        max_retries: int | None = None,
    ) -> EmbeddingResult:
        """Embed a text.

        Args:
            text: Text to embed
            preferred_model: Embedding model to try first
            max_retries: Optional cap on attempts

        Returns:
            EmbeddingResult: Non-empty vector and the model that produced it
        """
        vector, model_used = await run_with_failover(
            "embedding",
            self.models,
            lambda model: self.backend.embed(model, text),
            lambda vector: bool(vector),
            preferred_model=preferred_model,
            max_retries=max_retries,
            timeout=self.timeout,
        )
        return EmbeddingResult(vector=list(vector), model_used=model_used)


class GenerationProvider:
    """Generates text, failing over across generation models on rate limits."""

    def __init__(
        self,
        backend: ModelBackend,
        models: list[ModelConfig],
        timeout: float | None = None,
    ) -> None:
        self.backend = backend
        self.models = list(models)
        self.timeout = _resolve_timeout(timeout)

    async def generate(
        self,
        prompt: str,
        preferred_model: str | None = None,
        max_retries: int | None = None,
        images: list[str] | None = None,
    ) -> GenerationResult:
        """Generate a completion.

        Args:
            prompt: Prompt text
            preferred_model: Generation model to try first
            max_retries: Optional cap on attempts
            images: Optional images as data URIs, for vision requests

        Returns:
            GenerationResult: Non-blank text and the model that produced it
        """
        text, model_used = await run_with_failover(
            "generation",
            self.models,
            lambda model: self.backend.generate(model, prompt, images),
            lambda text: bool(text and text.strip()),
            preferred_model=preferred_model,
            max_retries=max_retries,
            timeout=self.timeout,
        )
        return GenerationResult(text=text, model_used=model_used)


class ModelProvider:
    """The model capability handed to the retrieval, answering and ingestion services.

    Bundles an embedding provider and a generation provider over one backend.
    """

    def __init__(
        self,
        backend: ModelBackend,
        generation_models: list[ModelConfig] | None = None,
        embedding_models: list[ModelConfig] | None = None,
        timeout: float | None = None,
    ) -> None:
        default_generation, default_embedding = DEFAULT_MODELS.get(
            backend.name, DEFAULT_MODELS["gemini"]
        )
        self.backend = backend
        self.generation = GenerationProvider(
            backend, generation_models or default_generation, timeout=timeout
        )
        self.embedding = EmbeddingProvider(
            backend, embedding_models or default_embedding, timeout=timeout
        )

    async def embed(self, text: str, **kwargs: Any) -> EmbeddingResult:
        return await self.embedding.embed(text, **kwargs)

    async def generate(self, prompt: str, **kwargs: Any) -> GenerationResult:
        return await self.generation.generate(prompt, **kwargs)
