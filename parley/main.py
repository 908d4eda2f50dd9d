"""Parley main entry point."""

import asyncio
import logging
import os

from .character import load_character
from .channels.telegram import TelegramChannel
from .config import load_settings
from .runtime import AgentRuntime

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_log_file = os.path.expanduser("~/parley.log")


def setup_logging(debug: bool = False):
    logging.basicConfig(
        level=logging.INFO,
        format=_log_format,
        handlers=[
            logging.StreamHandler(),                          # stderr (console)
            logging.FileHandler(_log_file, encoding="utf-8"), # ~/parley.log
        ],
    )
    if debug:
        logging.getLogger("parley").setLevel(logging.DEBUG)


logger = logging.getLogger("parley")


async def run():
    """Main run loop."""
    settings = load_settings()
    runtime = None
    channels = []

    try:
        character = load_character(settings.character_file)
        runtime = AgentRuntime(settings, character)
        await runtime.start()

        if not settings.telegram_bot_token:
            raise RuntimeError("No Telegram bot token configured. Set PARLEY_TELEGRAM_BOT_TOKEN in .env.")

        telegram = TelegramChannel(runtime, settings.telegram_bot_token)
        await telegram.start()
        channels.append(telegram)
        logger.info("Telegram channel active.")

        # Keep alive
        logger.info(f"{character.name} is running. Press Ctrl+C to stop.")
        while runtime.running:
            await asyncio.sleep(1)

    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
        raise
    finally:
        for ch in channels:
            await ch.stop()
        if runtime:
            await runtime.stop()


def main():
    """Entry point."""
    setup_logging(debug=load_settings().debug)
    asyncio.run(run())


if __name__ == "__main__":
    main()
