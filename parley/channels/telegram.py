"""Telegram channel adapter."""

import asyncio
import logging
from typing import Optional

from telegram import Bot, Message, ReplyParameters, Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from ..models import AttachmentRef, ChatType, InboundEvent, SentMessage
from ..orchestrator import MessageOrchestrator

logger = logging.getLogger("parley.telegram")


def to_inbound_event(message: Message, text: Optional[str] = None) -> InboundEvent:
    """Convert a Telegram message into an InboundEvent.

    ``text`` overrides the message text (used by the ``/message`` command,
    where only the command arguments are the user's words).
    """
    attachments = []
    for photo in message.photo or ():
        attachments.append(AttachmentRef(
            file_id=photo.file_id, kind="photo", width=photo.width, height=photo.height,
        ))
    if message.document:
        attachments.append(AttachmentRef(
            file_id=message.document.file_id,
            kind="document",
            mime_type=message.document.mime_type,
        ))

    sender = message.from_user
    reply = message.reply_to_message

    return InboundEvent(
        message_id=message.message_id,
        chat_id=message.chat.id,
        chat_type=ChatType.DIRECT if message.chat.type == "private" else ChatType.GROUP,
        sender_id=sender.id if sender else None,
        sender_username=sender.username if sender else None,
        sender_name=sender.full_name if sender else None,
        sender_is_bot=bool(sender and sender.is_bot),
        text=text if text is not None else message.text,
        caption=message.caption,
        attachments=tuple(attachments),
        reply_to_message_id=reply.message_id if reply else None,
        date=int(message.date.timestamp()) if message.date else 0,
    )


class TelegramPlatform:
    """The two platform calls the pipeline needs: file URLs and sends."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def get_file_url(self, file_id: str) -> str:
        tg_file = await self.bot.get_file(file_id)
        return tg_file.file_path

    async def send_message(
        self,
        chat_id: int,
        text: str,
        reply_to_message_id: Optional[int] = None,
    ) -> SentMessage:
        reply_params = ReplyParameters(message_id=reply_to_message_id) if reply_to_message_id else None
        msg = await self.bot.send_message(chat_id=chat_id, text=text, reply_parameters=reply_params)
        return SentMessage(
            message_id=msg.message_id,
            text=msg.text or text,
            date=int(msg.date.timestamp()),
        )

    async def send_typing(self, chat_id: int):
        await self.bot.send_chat_action(chat_id, "typing")


class _TypingIndicator:
    """Keeps sending 'typing' every 4s until the wrapped block finishes.

    Stops on its own after max_duration seconds even if the block hangs.
    """

    def __init__(self, platform: TelegramPlatform, chat_id: int, interval: float = 4.0, max_duration: float = 120.0):
        self._platform = platform
        self._chat_id = chat_id
        self._interval = interval
        self._max_duration = max_duration
        self._task: Optional[asyncio.Task] = None

    async def _loop(self):
        loop = asyncio.get_running_loop()
        start = loop.time()
        try:
            while loop.time() - start <= self._max_duration:
                await self._platform.send_typing(self._chat_id)
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"Typing indicator stopped for chat {self._chat_id}: {e}")

    async def __aenter__(self):
        self._task = asyncio.create_task(self._loop())
        return self

    async def __aexit__(self, *exc):
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class TelegramChannel:
    """Telegram bot adapter: turns updates into orchestrator cycles."""

    def __init__(self, runtime, bot_token: str):
        self.runtime = runtime
        self.bot_token = bot_token
        self.app: Optional[Application] = None
        self.platform: Optional[TelegramPlatform] = None
        self.orchestrator = None

    async def start(self):
        """Start the Telegram bot."""
        # Cycles are serialised per conversation by the orchestrator, not here
        self.app = Application.builder().token(self.bot_token).concurrent_updates(True).build()
        self.platform = TelegramPlatform(self.app.bot)
        self.orchestrator = MessageOrchestrator(self.runtime, self.platform, source="telegram")

        self.app.add_handler(CommandHandler("message", self._cmd_message))

        # Text, photos and documents all go through the same cycle
        self.app.add_handler(MessageHandler(
            (filters.TEXT & ~filters.COMMAND) | filters.PHOTO | filters.Document.ALL,
            self._handle_message,
        ))

        self.app.add_error_handler(self._handle_error)

        logger.info("Starting Telegram bot...")
        await self.app.initialize()
        await self.app.start()
        await self.app.updater.start_polling(drop_pending_updates=True)

        me = await self.app.bot.get_me()
        if me.username and not self.runtime.character.username:
            logger.info(f"Character has no username, using bot handle @{me.username}")
            self.runtime.character.username = me.username

        logger.info("Telegram bot started.")

    async def stop(self):
        """Stop the Telegram bot."""
        if self.app:
            await self.app.updater.stop()
            await self.app.stop()
            await self.app.shutdown()
            logger.info("Telegram bot stopped.")

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        if not update.message:
            return
        await self._dispatch(update.message)

    async def _cmd_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """/message <text>: talk to the agent explicitly."""
        if not update.message:
            return
        await self._dispatch(update.message, text=" ".join(context.args or []))

    async def _dispatch(self, message: Message, text: Optional[str] = None):
        event = to_inbound_event(message, text=text)
        # Groups are mostly skipped; typing there would show for every message
        if event.chat_type == ChatType.DIRECT:
            async with _TypingIndicator(self.platform, event.chat_id):
                result = await self.orchestrator.handle(event)
        else:
            result = await self.orchestrator.handle(event)
        logger.debug(f"Message {event.message_id} finished at {result.stage.value}")

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors."""
        logger.error(f"Telegram error: {context.error}", exc_info=context.error)
