# handlers/admin_status.py
import logging
from typing import Iterable, Optional, Sequence

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes

from relay_ext.errors import OrderNotFound
from relay_ext.order_ids import normalize_token
from relay_ext.registry import OrderRegistry, APPROVED, REJECTED

logger = logging.getLogger(__name__)

ACCESS_DENIED = "У вас нет прав для выполнения этой команды."

# в ответе "не найден" показываем только последние ID, сообщение Telegram <= 4096 символов
KNOWN_IDS_LIMIT = 50
TOKEN_ECHO_LIMIT = 32

_DONE = {
    APPROVED: "✅ Заказ {order_id} подтвержден",
    REJECTED: "❌ Заказ {order_id} отклонен",
}
_COMMAND = {APPROVED: "approve", REJECTED: "reject"}


class AdminPolicy:
    """Список user_id, которым разрешены команды управления заказами."""

    def __init__(self, admin_ids: Iterable[int] = ()):
        self.admin_ids = frozenset(int(i) for i in admin_ids)

    def is_authorized(self, user_id: Optional[int]) -> bool:
        return user_id is not None and user_id in self.admin_ids


def _usage(status: str) -> str:
    return f"Укажите ID заказа, например: /{_COMMAND[status]} #1234"


def _known_ids(registry: OrderRegistry) -> str:
    ids = registry.ids()
    if not ids:
        return "нет"
    shown = ", ".join(ids[-KNOWN_IDS_LIMIT:])
    rest = len(ids) - KNOWN_IDS_LIMIT
    return f"{shown} и ещё {rest}" if rest > 0 else shown


def _not_found(token: str, registry: OrderRegistry) -> str:
    return f"Заказ {token[:TOKEN_ECHO_LIMIT]} не найден. Известные заказы: {_known_ids(registry)}"


async def apply_status_command(
    registry: OrderRegistry,
    policy: AdminPolicy,
    user_id: Optional[int],
    args: Sequence[str],
    status: str,
) -> str:
    """Выполняет /approve или /reject и возвращает текст ответа."""
    if not policy.is_authorized(user_id):
        logger.warning("Попытка /%s без прав от %s", _COMMAND[status], user_id)
        return ACCESS_DENIED
    if not args:
        return _usage(status)

    order_id = normalize_token(args[0])
    if order_id is None or order_id not in registry:
        logger.info("/%s: заказ %r не найден", _COMMAND[status], args[0])
        return _not_found(args[0], registry)

    try:
        await registry.set_status(order_id, status)
    except OrderNotFound:
        return _not_found(order_id, registry)
    logger.info("Админ %s: заказ %s -> %s", user_id, order_id, status)
    return _DONE[status].format(order_id=order_id)


async def cmd_approve(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user = update.effective_user
    reply = await apply_status_command(
        context.bot_data["registry"], context.bot_data["admin_policy"],
        user.id if user else None, context.args or [], APPROVED,
    )
    await update.effective_message.reply_text(reply)


async def cmd_reject(update: Update, context: ContextTypes.DEFAULT_TYPE):
    user = update.effective_user
    reply = await apply_status_command(
        context.bot_data["registry"], context.bot_data["admin_policy"],
        user.id if user else None, context.args or [], REJECTED,
    )
    await update.effective_message.reply_text(reply)


def register_admin_handlers(app: Application, registry: OrderRegistry, policy: AdminPolicy):
    app.bot_data["registry"] = registry
    app.bot_data["admin_policy"] = policy
    app.add_handler(CommandHandler("approve", cmd_approve))
    app.add_handler(CommandHandler("reject", cmd_reject))
