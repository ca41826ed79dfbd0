"""Google Gemini model backend."""

import logging
from typing import Any

from google import genai

from docqa.ingest.images import decode_data_uri

logger = logging.getLogger(__name__)


class GeminiBackend:
    """Google Gemini backend for generation, vision and embeddings.

    Uses the async surface of the google-genai client so that a cancelled
    request also cancels the HTTP call in flight. The API key is
    automatically retrieved from the GEMINI_API_KEY environment variable
    unless one is passed explicitly.
    """

    name = "gemini"

    def __init__(self, api_key: str | None = None) -> None:
        """Initialize the Gemini backend.

        Args:
            api_key: Optional API key; defaults to the GEMINI_API_KEY env var
        """
        logger.info("🤖 Initializing GeminiBackend")
        if api_key:
            self.client = genai.Client(api_key=api_key)
        else:
            self.client = genai.Client()

    def _build_contents(self, prompt: str, images: list[str] | None) -> Any:
        """Convert a prompt and data-URI images to Gemini contents.

        Args:
            prompt: Prompt text
            images: Images as data URIs

        Returns:
            The plain prompt, or a list of the prompt followed by inline image parts
        """
        if not images:
            return prompt

        contents: list[Any] = [prompt]
        for image in images:
            mime_type, data = decode_data_uri(image)
            contents.append(genai.types.Part.from_bytes(data=data, mime_type=mime_type))
        return contents

    async def generate(self, model: str, prompt: str, images: list[str] | None = None) -> str:
        """Generate content with a Gemini model.

        Args:
            model: The model name (e.g., "gemini-2.5-flash")
            prompt: The prompt text
            images: Optional images as data URIs

        Returns:
            str: The generated text, empty if the model returned none
        """
        logger.debug(f"🗣️  Generating with {model} ({len(prompt)} chars, {len(images or [])} images)")
        response = await self.client.aio.models.generate_content(
            model=model,
            contents=self._build_contents(prompt, images),
        )
        return response.text or ""

    async def embed(self, model: str, text: str) -> list[float]:
        """Embed a text with a Gemini embedding model.

        Args:
            model: The embedding model name (e.g., "text-embedding-004")
            text: Text to embed

        Returns:
            list[float]: The embedding vector, empty if none was returned
        """
        response = await self.client.aio.models.embed_content(model=model, contents=[text])
        if not response.embeddings:
            return []
        return list(response.embeddings[0].values or [])
