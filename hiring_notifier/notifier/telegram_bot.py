"""Hiring Notifier — Telegram Bot Client.

Async Telegram client using python-telegram-bot. Sends each batch as an
HTML message, split at line boundaries when it exceeds Telegram's
message limit. Errors propagate to the caller; this layer does not retry.
"""

from __future__ import annotations

from typing import Optional

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode

from hiring_notifier.config import TelegramConfig
from hiring_notifier.models import NotificationBatch
from hiring_notifier.notifier.formatters import format_batch
from hiring_notifier.utils.logger import get_logger

logger = get_logger(__name__)

_MAX_MESSAGE_LEN = 4096
_SAFE_LEN = 4000  # leave headroom


class TelegramNotifier:
    """Sends notification batches to one Telegram chat.

    Attributes:
        config: TelegramConfig with bot_token and chat_id.
    """

    def __init__(self, config: TelegramConfig, bot: Optional[Bot] = None) -> None:
        """Initialize the notifier.

        Args:
            config: TelegramConfig from the app configuration.
            bot: Pre-built Bot, mainly for tests. Built from the token if omitted.
        """
        self.config = config
        self._bot = bot or Bot(token=config.bot_token)

    async def initialize(self) -> bool:
        """Verify the bot token with getMe.

        Returns:
            True if connected successfully, False otherwise.
        """
        try:
            me = await self._bot.get_me()
            logger.info("Telegram bot connected: @%s", me.username)
            return True
        except Exception as e:
            logger.error("Telegram bot connection failed: %s", e)
            return False

    async def send_batch(self, batch: NotificationBatch) -> None:
        """Deliver one location batch.

        Args:
            batch: The batch to send.

        Raises:
            telegram.error.TelegramError: If Telegram rejects the message.
        """
        await self.send_message(format_batch(batch))

    async def send_message(self, text: str) -> Optional[str]:
        """Send HTML text to the configured chat, splitting long messages.

        Args:
            text: Message content.

        Returns:
            Message ID of the last chunk, or None for empty text.

        Raises:
            telegram.error.TelegramError: If any chunk fails.
        """
        if not text:
            return None

        last_msg_id: Optional[str] = None
        for chunk in self._split_message(text, _SAFE_LEN):
            msg = await self._bot.send_message(
                chat_id=self.config.chat_id,
                text=chunk,
                parse_mode=ParseMode.HTML,
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
            last_msg_id = str(msg.message_id)
        return last_msg_id

    @staticmethod
    def _split_message(text: str, max_len: int = _SAFE_LEN) -> list[str]:
        """Split long text at paragraph or line boundaries.

        Tries double newlines first, then single newlines.
        Each chunk will be at most max_len characters.

        Args:
            text: Full message text.
            max_len: Maximum characters per chunk.

        Returns:
            List of text chunks.
        """
        if len(text) <= max_len:
            return [text]

        chunks: list[str] = []
        remaining = text

        while len(remaining) > max_len:
            cut_point = remaining.rfind("\n\n", 0, max_len)
            if cut_point <= 0:
                cut_point = remaining.rfind("\n", 0, max_len)
            if cut_point <= 0:
                cut_point = max_len

            chunks.append(remaining[:cut_point].rstrip())
            remaining = remaining[cut_point:].lstrip("\n")

        if remaining.strip():
            chunks.append(remaining.strip())

        return chunks

    async def close(self) -> None:
        """Release the bot's HTTP resources."""
        try:
            await self._bot.shutdown()
        except Exception as e:
            logger.debug("Telegram bot shutdown error: %s", e)
