# -*- coding: utf-8 -*-
from __future__ import annotations
import logging

from aiohttp import web
from telegram.ext import Application, ApplicationBuilder

from handlers.admin_status import AdminPolicy, register_admin_handlers
from handlers.orders_api import build_http_app
from relay_ext.config import Settings, load_settings, setup_logging
from relay_ext.registry import OrderRegistry
from relay_ext.store import OrderStore
from utils.notify import Notifier

logger = logging.getLogger(__name__)


async def _start_http_server(app: Application):
    settings: Settings = app.bot_data["settings"]
    http_app = build_http_app(app.bot_data["registry"], app.bot_data["notifier"], settings.max_body_bytes)
    runner = web.AppRunner(http_app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.port)
    await site.start()
    logger.info("🌐 HTTP server started on 0.0.0.0:%d", settings.port)
    app.bot_data["http_runner"] = runner


async def _post_init(app: Application):
    try:
        await app.bot.delete_webhook(drop_pending_updates=True)
        logger.info("✅ Webhook удалён, polling активирован.")
    except Exception:
        logger.exception("⚠️ Ошибка удаления webhook")
    await _start_http_server(app)


async def _post_shutdown(app: Application):
    # сначала перестаём принимать заказы, потом дожидаемся уведомлений
    runner = app.bot_data.pop("http_runner", None)
    if runner is not None:
        await runner.cleanup()
        logger.info("HTTP server stopped")
    notifier: Notifier = app.bot_data.get("notifier")
    if notifier is not None and notifier.pending:
        logger.info("Ожидание отправки уведомлений: %d", notifier.pending)
        await notifier.drain()


def build_application(settings: Settings, registry: OrderRegistry | None = None) -> Application:
    app = (
        ApplicationBuilder()
        .token(settings.bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    if registry is None:
        registry = OrderRegistry.from_store(OrderStore(settings.orders_file))
    app.bot_data["settings"] = settings
    app.bot_data["notifier"] = Notifier(app.bot, settings.chat_id)
    register_admin_handlers(app, registry, AdminPolicy(settings.admin_ids))
    return app


def main():
    settings = load_settings()
    setup_logging(settings.log_level)
    logger.info("Starting server...")
    logger.info("Bot token: %s", settings.token_tail)
    logger.info("Chat ID: %s", "задан" if settings.chat_id else "не задан")
    logger.info("Admins: %d", len(settings.admin_ids))
    if not settings.bot_token:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set")
    if not settings.chat_id:
        logger.warning("TELEGRAM_CHAT_ID не задан, уведомления о заказах отправляться не будут")
    application = build_application(settings)
    logger.info("🚀 Bot is running...")
    application.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
