"""Turn photos and image documents into text."""

import logging
from typing import Optional

from .models import AttachmentRef, InboundEvent

logger = logging.getLogger("parley.attachments")


def pick_image(event: InboundEvent) -> Optional[AttachmentRef]:
    """Largest photo variant, else the first image document, else None."""
    photos = [a for a in event.attachments if a.kind == "photo"]
    if photos:
        return max(photos, key=lambda a: a.width * a.height)
    for attachment in event.attachments:
        if attachment.kind == "document" and attachment.is_image:
            return attachment
    return None


def format_description(title: str, description: str) -> str:
    return f"[Image: {title}\n{description}]"


class AttachmentResolver:
    """Resolve an event's image into ``[Image: <title>\\n<description>]``.

    ``platform`` provides ``get_file_url(file_id)``; ``describer`` provides
    ``describe(url)``. Any failure means "no attachment".
    """

    def __init__(self, platform, describer):
        self.platform = platform
        self.describer = describer

    async def resolve(self, event: InboundEvent) -> Optional[str]:
        image = pick_image(event)
        if image is None:
            return None

        try:
            url = await self.platform.get_file_url(image.file_id)
            result = await self.describer.describe(url)
        except Exception as e:
            logger.error(f"Error processing image {image.file_id}: {e}")
            return None

        logger.info(f"Described image in chat {event.chat_id}: {result.title}")
        return format_description(result.title, result.description)
