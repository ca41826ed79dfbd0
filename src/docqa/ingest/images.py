"""Image encoding helpers and AI image descriptions.

Images travel through the pipeline as data URIs of the exact form
``data:<mime>;base64,<payload>``. The same string is stored with the
DocumentImage and decoded again when the image is sent to a vision model.
"""

import base64
import logging
import re
from pathlib import PurePath
from typing import TYPE_CHECKING

from docqa.constants import (
    IMAGE_DESCRIPTION_FALLBACK,
    IMAGE_DESCRIPTION_PROMPT,
    get_vision_model,
)

if TYPE_CHECKING:
    from docqa.llm.failover import ModelProvider

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"

IMAGE_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
}

_DATA_URI_PATTERN = re.compile(r"^data:([^;,]+);base64,(.*)$", re.DOTALL)


def mime_type_for(filename: str) -> str:
    """Infer an image MIME type from a file name's extension.

    Args:
        filename: File name or path

    Returns:
        str: MIME type, "image/png" when the extension is not recognised
    """
    return IMAGE_MIME_TYPES.get(PurePath(filename).suffix.lower(), DEFAULT_IMAGE_MIME)


def encode_data_uri(data: bytes, mime_type: str = DEFAULT_IMAGE_MIME) -> str:
    """Encode raw image bytes as a base64 data URI."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def is_data_uri(value: str) -> bool:
    """Check whether a string is an inline base64 image."""
    return value.startswith("data:image")


def parse_data_uri(uri: str) -> tuple[str, str]:
    """Split a data URI into its MIME type and base64 payload.

    Args:
        uri: A string of the form data:<mime>;base64,<payload>

    Returns:
        tuple[str, str]: (mime_type, base64_payload)

    Raises:
        ValueError: If the string is not a base64 data URI
    """
    match = _DATA_URI_PATTERN.match(uri)
    if not match:
        raise ValueError("Not a base64 data URI")
    return match.group(1), match.group(2)


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Decode a data URI into its MIME type and raw bytes."""
    mime_type, payload = parse_data_uri(uri)
    return mime_type, base64.b64decode(payload)


class ImageDescriber:
    """Describes images with a vision-capable generation model.

    Descriptions are best effort: any failure yields a fixed fallback string
    so that one bad image never blocks ingestion of the rest of a document.
    """

    def __init__(
        self,
        provider: "ModelProvider",
        prompt: str = IMAGE_DESCRIPTION_PROMPT,
        vision_model: str | None = None,
    ) -> None:
        self.provider = provider
        self.prompt = prompt
        self.vision_model = vision_model or get_vision_model()

    async def describe(self, image_data: str) -> str:
        """Describe an image given as a data URI.

        Args:
            image_data: The image as data:<mime>;base64,<payload>

        Returns:
            str: The description, or the fallback text on any failure
        """
        try:
            parse_data_uri(image_data)
            result = await self.provider.generate(
                self.prompt,
                preferred_model=self.vision_model,
                images=[image_data],
            )
            return result.text
        except Exception as e:
            logger.error(f"❌ Error describing image: {e}")
            return IMAGE_DESCRIPTION_FALLBACK
