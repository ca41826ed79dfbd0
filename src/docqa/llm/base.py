"""Base classes and protocols for model backends."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ModelConfig:
    """A backend model entry in a failover list.

    The rate-limit figures are the provider's published nominal limits. They
    document why a model sits where it does in the list; nothing enforces
    them locally.

    Attributes:
        name: Model name as understood by the backend
        rpm: Requests per minute
        tpm: Tokens per minute
        rpd: Requests per day
    """

    name: str
    rpm: int | None = None
    tpm: int | None = None
    rpd: int | None = None


class ModelBackend(Protocol):
    """Protocol defining the raw calls a model backend must support.

    A backend performs exactly one call against one named model. Retrying
    across models is the job of the failover providers, so implementations
    must let provider errors propagate unchanged.
    """

    name: str

    async def generate(self, model: str, prompt: str, images: list[str] | None = None) -> str:
        """Generate a completion for a prompt.

        Args:
            model: Model name to call
            prompt: The full prompt text
            images: Optional images as data URIs (data:<mime>;base64,<payload>)

        Returns:
            str: The generated text (may be empty)
        """
        ...

    async def embed(self, model: str, text: str) -> list[float]:
        """Generate an embedding vector for a text.

        Args:
            model: Embedding model name to call
            text: Text to embed

        Returns:
            list[float]: The embedding vector (may be empty)
        """
        ...
