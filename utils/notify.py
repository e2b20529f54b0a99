import asyncio, base64, binascii, logging
from typing import Optional, Set

from telegram import Bot

logger = logging.getLogger(__name__)


def _format_item(item: dict) -> str:
    return f"{item.get('name')} - {item.get('price')} ₽ x {item.get('quantity')}"


def format_order_message(order_id: str, order: dict) -> str:
    items = order.get("items") or []
    item_list = "\n".join(_format_item(i) for i in items)
    if order.get("discord"):
        contact = f"🌐 Discord: {order.get('discord')}"
    else:
        contact = f"✉️ Email: {order.get('email') or 'Нет'}"
    return (
        f"📋 Новый заказ {order_id}\n"
        f"👤 Имя: {order.get('firstName')} {order.get('lastName')}\n"
        f"🛂 Паспорт: {order.get('passport')}\n"
        f"📞 Телефон: {order.get('phone')}\n"
        f"{contact}\n"
        f"ℹ️ Дополнительно: {order.get('additional') or 'Нет'}\n"
        f"💰 Сумма: {order.get('amount')} ₽\n"
        f"🛒 Услуги:\n"
        f"{item_list}"
    )


def decode_photo(photo: str) -> bytes:
    """data:image/png;base64,AAAA -> байты. Без запятой декодируется вся строка."""
    payload = photo.split(",", 1)[1] if "," in photo else photo
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"фото не в base64: {e}") from e


class Notifier:
    """Отправляет уведомления о заказах в один чат. Ошибки только логируются."""

    def __init__(self, bot: Bot, chat_id):
        self.bot = bot
        self.chat_id = chat_id
        self._tasks: Set[asyncio.Task] = set()

    async def deliver(self, order_id: str, message: str, photo: Optional[str] = None) -> None:
        if not self.chat_id:
            logger.warning("TELEGRAM_CHAT_ID не задан, уведомление о заказе %s не отправлено", order_id)
            return
        try:
            await self.bot.send_message(chat_id=self.chat_id, text=message)
        except Exception:
            logger.exception("Ошибка отправки сообщения о заказе %s", order_id)
        if not photo:
            return
        try:
            data = decode_photo(photo)
            await self.bot.send_photo(
                chat_id=self.chat_id,
                photo=data,
                caption=f"Фото оплаты для заказа {order_id}",
            )
        except Exception:
            logger.exception("Ошибка отправки фото для заказа %s", order_id)

    async def notify_order(self, order_id: str, order: dict, photo: Optional[str] = None) -> None:
        try:
            message = format_order_message(order_id, order)
        except Exception:
            logger.exception("Не удалось сформировать сообщение о заказе %s", order_id)
            return
        logger.info("Отправка уведомления о заказе %s", order_id)
        await self.deliver(order_id, message, photo)

    def dispatch(self, order_id: str, order: dict, photo: Optional[str] = None) -> asyncio.Task:
        """Запускает уведомление отдельной задачей, не дожидаясь отправки."""
        task = asyncio.create_task(self.notify_order(order_id, order, photo))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
