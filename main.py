from __future__ import annotations

import logging
import sys

from telegram import BotCommand, BotCommandScopeDefault
from telegram.ext import Application, MessageHandler, filters

from statusbot.checker import StatusResolver
from statusbot.config import AppConfig, ConfigError, load_config
from statusbot.constants import COMMAND_DESCRIPTIONS
from statusbot.dispatcher import Dispatcher
from statusbot.handlers import error_handler, member_update_handler, message_handler
from statusbot.sessions import SessionStore

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # httpx logs every request at INFO, including the bot token in the URL.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _post_init_set_commands(app: Application) -> None:
    commands = [BotCommand(name, description) for name, description in COMMAND_DESCRIPTIONS]
    await app.bot.set_my_commands(commands, scope=BotCommandScopeDefault())
    logger.info("Telegram command menu updated")


async def _post_shutdown_close_resolver(app: Application) -> None:
    resolver: StatusResolver = app.bot_data["resolver"]
    await resolver.aclose()


def build_application(config: AppConfig) -> Application:
    if not config.report_chat_id:
        logger.warning("REPORT_CHAT_ID is not set; reports will be refused")

    app = (
        Application.builder()
        .token(config.telegram_bot_token)
        .concurrent_updates(True)
        .post_init(_post_init_set_commands)
        .post_shutdown(_post_shutdown_close_resolver)
        .build()
    )

    async def deliver_report(chat_id: str, text: str) -> None:
        await app.bot.send_message(chat_id=chat_id, text=text)

    sessions = SessionStore(ttl_seconds=config.session_ttl_minutes * 60)
    resolver = StatusResolver(base_url=config.profile_base_url, timeout=config.probe_timeout_seconds)
    dispatcher = Dispatcher(
        sessions=sessions,
        resolver=resolver,
        deliver_report=deliver_report,
        report_chat_id=config.report_chat_id,
    )

    app.bot_data["sessions"] = sessions
    app.bot_data["resolver"] = resolver
    app.bot_data["dispatcher"] = dispatcher

    app.add_handler(
        MessageHandler(
            filters.StatusUpdate.NEW_CHAT_MEMBERS | filters.StatusUpdate.LEFT_CHAT_MEMBER,
            member_update_handler,
        )
    )
    # Commands and free text share one handler so the dispatcher's rule order decides.
    app.add_handler(MessageHandler(filters.TEXT, message_handler))
    app.add_error_handler(error_handler)

    return app


def main() -> None:
    configure_logging()

    try:
        config = load_config()
    except ConfigError as exc:
        logging.error("Startup failed: %s", exc)
        sys.exit(1)

    app = build_application(config)

    if config.webhook_url:
        logger.info("Starting webhook server on port %s", config.port)
        app.run_webhook(
            listen="0.0.0.0",
            port=config.port,
            url_path=f"bot{config.telegram_bot_token}",
            webhook_url=f"{config.webhook_url}/bot{config.telegram_bot_token}",
            drop_pending_updates=True,
        )
    else:
        app.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
