from __future__ import annotations

import logging
from typing import Any

from telegram import Message, Update
from telegram.ext import ContextTypes

from .constants import GENERIC_ERROR
from .dispatcher import Dispatcher
from .models import InboundMessage

logger = logging.getLogger(__name__)


def _service(context: ContextTypes.DEFAULT_TYPE, key: str) -> Any:
    return context.application.bot_data[key]


class TelegramConversation:
    """Replies to one inbound message; ``update`` edits the latest reply."""

    def __init__(self, message: Message) -> None:
        self.message = message
        self._last_reply: Message | None = None

    async def reply(self, text: str) -> None:
        self._last_reply = await self.message.reply_text(text)

    async def update(self, text: str) -> None:
        if self._last_reply is None:
            await self.reply(text)
            return
        await self._last_reply.edit_text(text)


def sender_label(update: Update) -> str:
    user = update.effective_user
    if user is None:
        return "Someone"
    return user.first_name or (f"@{user.username}" if user.username else "Someone")


async def message_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None or update.effective_user is None or update.effective_chat is None:
        return

    text = message.text or ""
    if not text.strip():
        return

    dispatcher: Dispatcher = _service(context, "dispatcher")
    inbound = InboundMessage(
        sender_id=update.effective_user.id,
        chat_id=update.effective_chat.id,
        text=text,
        sender_label=sender_label(update),
        bot_username=context.bot.username,
    )

    try:
        await dispatcher.dispatch(inbound, TelegramConversation(message))
    except Exception as exc:
        logger.exception("Unexpected error in message handler: %s", exc)
        try:
            await message.reply_text(GENERIC_ERROR)
        except Exception:
            logger.exception("Could not deliver the error reply to chat %s", inbound.chat_id)


async def member_update_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        return

    chat_title = message.chat.title or message.chat.id
    for user in message.new_chat_members or ():
        logger.info("User %s joined the chat %s", user.username or user.first_name, chat_title)
    if message.left_chat_member is not None:
        user = message.left_chat_member
        logger.info("User %s left the chat %s", user.username or user.first_name, chat_title)


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Telegram update %s caused an error", update, exc_info=context.error)
