"""Split a reply into platform-sized chunks and send them in order."""

import logging
from typing import Optional

from .models import OutboundChunk, SentMessage

logger = logging.getLogger("parley.delivery")

MAX_MESSAGE_LENGTH = 4096  # Telegram's max message length


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Greedy line packing.

    Lines are joined with ``\\n`` while ``len(current) + len(line) + 1`` fits.
    A single line longer than ``max_length`` is kept whole as its own chunk.
    """
    if not text:
        return []

    chunks: list[str] = []
    current = ""
    for line in text.split("\n"):
        if len(current) + len(line) + 1 <= max_length:
            current = f"{current}\n{line}" if current else line
        else:
            if current:
                chunks.append(current)
            current = line

    if current:
        chunks.append(current)
    return chunks


def chunk_text(
    text: str,
    max_length: int = MAX_MESSAGE_LENGTH,
    reply_to_message_id: Optional[int] = None,
) -> list[OutboundChunk]:
    """Split ``text`` into ordered chunks. Only the first one is a reply."""
    return [
        OutboundChunk(
            index=i,
            text=part,
            reply_to_message_id=reply_to_message_id if i == 0 else None,
        )
        for i, part in enumerate(split_message(text, max_length))
    ]


class Deliverer:
    """Sends chunks one after another through ``platform.send_message``."""

    def __init__(self, platform):
        self.platform = platform

    async def deliver(self, chat_id: int, chunks: list[OutboundChunk]) -> list[SentMessage]:
        """Send chunks sequentially.

        A failed send stops delivery; handles for chunks already sent are
        returned so they can still be recorded.
        """
        sent: list[SentMessage] = []
        for chunk in chunks:
            try:
                message = await self.platform.send_message(
                    chat_id,
                    chunk.text,
                    reply_to_message_id=chunk.reply_to_message_id,
                )
            except Exception as e:
                logger.error(
                    f"Send failed for chunk {chunk.index + 1}/{len(chunks)} in chat {chat_id}: {e}"
                )
                break
            sent.append(message)

        if sent:
            logger.info(f"Delivered {len(sent)}/{len(chunks)} chunk(s) to chat {chat_id}")
        return sent
