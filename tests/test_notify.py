import base64

import pytest

from utils.notify import Notifier, decode_photo, format_order_message

PNG = b"\x89PNG\r\n\x1a\nfake"
PHOTO = "data:image/png;base64," + base64.b64encode(PNG).decode()


def _order(**kw):
    order = {
        "firstName": "Ann",
        "lastName": "Lee",
        "passport": "AB 123456",
        "phone": "+7 900",
        "discord": "ann#0001",
        "amount": 700,
        "items": [
            {"name": "Service A", "price": 500, "quantity": 1},
            {"name": "Service B", "price": 100, "quantity": 2},
        ],
    }
    order.update(kw)
    return order


def test_format_message_fields():
    text = format_order_message("#1234", _order(additional="позвонить вечером"))
    assert "Новый заказ #1234" in text
    assert "Ann Lee" in text
    assert "AB 123456" in text
    assert "Discord: ann#0001" in text
    assert "Дополнительно: позвонить вечером" in text
    assert "Сумма: 700 ₽" in text
    assert text.endswith("Service A - 500 ₽ x 1\nService B - 100 ₽ x 2")


def test_format_message_placeholders():
    text = format_order_message("#1234", _order(discord=None, email="ann@example.com"))
    assert "Дополнительно: Нет" in text
    assert "Email: ann@example.com" in text
    assert "Discord" not in text


def test_decode_photo():
    assert decode_photo(PHOTO) == PNG
    assert decode_photo(base64.b64encode(PNG).decode()) == PNG


def test_decode_photo_invalid():
    with pytest.raises(ValueError):
        decode_photo("data:image/png;base64,@@@not-base64@@@")


@pytest.mark.asyncio
async def test_deliver_text_and_photo(notifier, bot):
    await notifier.deliver("#1234", "hello", PHOTO)
    bot.send_message.assert_awaited_once_with(chat_id="-100500", text="hello")
    bot.send_photo.assert_awaited_once()
    kwargs = bot.send_photo.await_args.kwargs
    assert kwargs["photo"] == PNG
    assert kwargs["caption"] == "Фото оплаты для заказа #1234"


@pytest.mark.asyncio
async def test_deliver_failures_are_swallowed(notifier, bot, caplog):
    bot.send_message.side_effect = RuntimeError("telegram down")
    bot.send_photo.side_effect = RuntimeError("telegram down")
    await notifier.deliver("#1234", "hello", PHOTO)
    # фото пробуем отправить даже если текст не ушёл
    bot.send_photo.assert_awaited_once()
    assert "Ошибка отправки сообщения о заказе #1234" in caplog.text
    assert "Ошибка отправки фото для заказа #1234" in caplog.text


@pytest.mark.asyncio
async def test_deliver_bad_photo_is_swallowed(notifier, bot):
    await notifier.deliver("#1234", "hello", "data:image/png;base64,%%%")
    bot.send_message.assert_awaited_once()
    bot.send_photo.assert_not_awaited()


@pytest.mark.asyncio
async def test_deliver_without_chat_id_skips(bot):
    await Notifier(bot, "").deliver("#1234", "hello")
    bot.send_message.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_runs_in_background(notifier, bot):
    task = notifier.dispatch("#1234", _order())
    assert notifier.pending == 1
    await notifier.drain()
    assert task.done()
    assert notifier.pending == 0
    text = bot.send_message.await_args.kwargs["text"]
    assert "Новый заказ #1234" in text
    bot.send_photo.assert_not_awaited()


@pytest.mark.asyncio
async def test_dispatch_bad_order_is_logged(notifier, bot, caplog):
    notifier.dispatch("#1234", {"items": ["not-a-dict"]})
    await notifier.drain()
    bot.send_message.assert_not_awaited()
    assert "Не удалось сформировать сообщение" in caplog.text


def test_format_message_without_contact():
    text = format_order_message("#1234", _order(discord=None))
    assert "Email: Нет" in text
    assert "None" not in text
