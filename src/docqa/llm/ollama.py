"""Ollama model backend."""

import logging

import ollama

from docqa.ingest.images import parse_data_uri

logger = logging.getLogger(__name__)


class OllamaBackend:
    """Ollama backend for locally hosted models.

    Vision requests attach the base64 payloads to the user message, which
    Ollama forwards to multimodal models such as llava.
    """

    name = "ollama"

    def __init__(self, host: str) -> None:
        """Initialize the Ollama backend.

        Args:
            host: The Ollama server host URL (e.g., "http://localhost:11434")
        """
        self.host = host
        logger.info(f"🤖 Initializing OllamaBackend: host={host}")
        self.client = ollama.AsyncClient(host=host)

    async def generate(self, model: str, prompt: str, images: list[str] | None = None) -> str:
        """Generate a completion with an Ollama chat model.

        Args:
            model: The model name (e.g., "llama3")
            prompt: The prompt text
            images: Optional images as data URIs

        Returns:
            str: The message content, empty if the model returned none
        """
        message: dict = {"role": "user", "content": prompt}
        if images:
            message["images"] = [parse_data_uri(image)[1] for image in images]

        logger.debug(f"🗣️  Generating with {model} ({len(prompt)} chars, {len(images or [])} images)")
        response = await self.client.chat(model=model, messages=[message])
        return response.message.content or ""

    async def embed(self, model: str, text: str) -> list[float]:
        """Embed a text with an Ollama embedding model.

        Args:
            model: The embedding model name (e.g., "nomic-embed-text")
            text: Text to embed

        Returns:
            list[float]: The embedding vector, empty if none was returned
        """
        response = await self.client.embed(model=model, input=text)
        embeddings = response["embeddings"]
        if not embeddings:
            return []
        return list(embeddings[0])
