"""Image description via a vision-capable chat model."""

import logging

from ..models import ImageDescription
from .provider import LLMProvider, ChatMessage, ModelClass

logger = logging.getLogger("parley.llm.vision")

DESCRIBE_PROMPT = (
    "Describe this image and give it a title. The first line should be the "
    "title, and then a line break, then a detailed description of the image. "
    "If there is text in the image, transcribe it."
)


def parse_description(text: str) -> ImageDescription:
    """First non-empty line is the title, the rest is the description."""
    lines = [line.strip() for line in text.strip().splitlines()]
    lines = [line for line in lines if line]
    if not lines:
        return ImageDescription(title="Image", description="")
    title = lines[0].lstrip("#").strip().strip("*").strip()
    if title.lower().startswith("title:"):
        title = title[6:].strip()
    return ImageDescription(title=title or "Image", description="\n".join(lines[1:]))


class ImageDescriber:
    """Describe an image URL with the provider's VISION model class."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider

    async def describe(self, image_url: str) -> ImageDescription:
        response = await self.provider.chat(
            messages=[ChatMessage(role="user", content=DESCRIBE_PROMPT, metadata={"image_url": image_url})],
            model_class=ModelClass.VISION,
            temperature=0.2,
        )
        description = parse_description(response.content)
        logger.debug(f"Described image: {description.title}")
        return description
