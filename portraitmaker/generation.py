"""Gemini image-model client for portrait generation."""

import asyncio
import base64
import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

from google import genai
from google.genai import errors, types

from .prompt import PortraitOptions, build_instruction
from .raster_ingest import mime_type
from .types import GenerationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"
MISSING_KEY = "API Key is missing. Please check your configuration."
NO_IMAGE = (
    "The AI did not generate an image. It might have responded with text "
    "instead due to content filters."
)
GENERIC_FAILURE = "Failed to generate portrait."


@dataclass
class GeneratorConfig:
    """Connection settings for the image model."""

    api_key: str = ""
    model: str = DEFAULT_MODEL

    @classmethod
    def from_env(cls) -> "GeneratorConfig":
        """Read GEMINI_API_KEY (or API_KEY) and PORTRAITMAKER_MODEL."""
        return cls(
            api_key=os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY", ""),
            model=os.environ.get("PORTRAITMAKER_MODEL", DEFAULT_MODEL),
        )


def extract_image(response: Any) -> Optional[bytes]:
    """Return the first inline image of the first candidate, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None)
        if data:
            if isinstance(data, str):
                return base64.b64decode(data)
            return bytes(data)
    return None


class PortraitGenerator:
    """Sends a photo plus instructions to the image model.

    A generator keeps no per-request state; callers decide whether a second
    request may start while one is pending.
    """

    def __init__(self, config: Optional[GeneratorConfig] = None, client: Any = None):
        """
        Args:
            config: Model settings. Read from the environment if None.
            client: Pre-built ``genai.Client`` (or compatible object).
        """
        self.config = config or GeneratorConfig.from_env()
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.config.api_key:
                raise GenerationError(MISSING_KEY)
            self._client = genai.Client(api_key=self.config.api_key)
        return self._client

    async def submit(self, image_bytes: bytes, instruction: str) -> bytes:
        """Submit one image and instruction; return the generated image bytes.

        Raises:
            GenerationError: If the key is missing, the call fails, or no
                image comes back
        """
        client = self._get_client()
        contents = [
            types.Part.from_text(text=instruction),
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type(image_bytes)),
        ]

        logger.info(f"Requesting portrait from {self.config.model}")
        try:
            response = await client.aio.models.generate_content(
                model=self.config.model,
                contents=contents,
            )
        except errors.APIError as e:
            logger.error(f"Image model error: {e}")
            raise GenerationError(e.message or GENERIC_FAILURE) from e
        except Exception as e:
            logger.error(f"Image model request failed: {e}")
            raise GenerationError(str(e) or GENERIC_FAILURE) from e

        image = extract_image(response)
        if not image:
            raise GenerationError(NO_IMAGE)
        logger.info(f"Received {len(image)} bytes of generated image")
        return image

    async def generate(self, image_bytes: bytes, options: PortraitOptions) -> bytes:
        """Build the instruction for ``options`` and submit it with the photo."""
        return await self.submit(image_bytes, build_instruction(options))


def generate_portrait(
    image_bytes: bytes,
    options: Optional[PortraitOptions] = None,
    config: Optional[GeneratorConfig] = None,
) -> bytes:
    """Blocking convenience wrapper around PortraitGenerator.generate."""
    generator = PortraitGenerator(config)
    return asyncio.run(generator.generate(image_bytes, options or PortraitOptions()))
