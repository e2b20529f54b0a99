from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from handlers.orders_api import build_http_app
from relay_ext.registry import OrderRegistry
from relay_ext.store import OrderStore
from utils.notify import Notifier


@pytest.fixture
def orders_file(tmp_path):
    return tmp_path / "orders.json"


@pytest.fixture
def store(orders_file) -> OrderStore:
    return OrderStore(orders_file)


@pytest.fixture
def registry(store) -> OrderRegistry:
    return OrderRegistry.from_store(store)


@pytest.fixture
def bot():
    """Telegram Bot с замоканными send_message / send_photo."""
    bot = MagicMock()
    bot.send_message = AsyncMock()
    bot.send_photo = AsyncMock()
    return bot


@pytest.fixture
def notifier(bot) -> Notifier:
    return Notifier(bot, "-100500")


@pytest_asyncio.fixture
async def client(registry, notifier):
    app = build_http_app(registry, notifier)
    async with TestClient(TestServer(app)) as client:
        yield client
    await notifier.drain()


@pytest.fixture
def sample_order():
    return {
        "id": "#1234",
        "firstName": "Ann",
        "lastName": "Lee",
        "passport": "AB 123456",
        "phone": "+7 900 000-00-00",
        "discord": "ann#0001",
        "amount": 500,
        "items": [{"name": "Service A", "price": 500, "quantity": 1}],
    }
