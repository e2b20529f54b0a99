# handlers/orders_api.py
import json, logging

import aiohttp_cors
from aiohttp import web

from relay_ext.errors import InvalidOrderId, InvalidStatus, OrderNotFound
from relay_ext.order_ids import ensure_order_id, is_valid_order_id
from relay_ext.registry import OrderRegistry, PENDING, SETTABLE_STATUSES
from utils.notify import Notifier

logger = logging.getLogger(__name__)

REGISTRY_KEY = web.AppKey("registry", OrderRegistry)
NOTIFIER_KEY = web.AppKey("notifier", Notifier)

SERVER_ERROR = "Ошибка сервера"

# поля заказа, которые сохраняются вместе со статусом (фото не храним)
SNAPSHOT_FIELDS = (
    "firstName", "lastName", "passport", "phone", "discord", "email",
    "additional", "amount", "items",
)


def _error(http_status: int, message: str, **extra) -> web.Response:
    return web.json_response({**extra, "error": message}, status=http_status)


def order_snapshot(body: dict) -> dict:
    data = {k: body.get(k) for k in SNAPSHOT_FIELDS if k in body}
    data["items"] = [
        {"name": i.get("name"), "price": i.get("price"), "quantity": i.get("quantity")}
        if isinstance(i, dict) else i
        for i in (body.get("items") or [])
    ]
    return data


async def _json_body(request: web.Request) -> dict:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Тело запроса не JSON"}), content_type="application/json"
        ) from None
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": "Ожидался JSON-объект"}), content_type="application/json"
        )
    return body


async def submit_order(request: web.Request) -> web.Response:
    registry = request.app[REGISTRY_KEY]
    notifier = request.app[NOTIFIER_KEY]
    body = await _json_body(request)
    try:
        order_id = ensure_order_id(body.get("id"))
    except InvalidOrderId as e:
        logger.warning("Отклонён заказ с неверным ID: %r", e.order_id)
        return _error(400, "Неверный формат ID заказа")
    logger.info("Получен заказ %s: %s %s", order_id, body.get("firstName"), body.get("lastName"))
    try:
        data = order_snapshot(body)
        await registry.create(order_id, {"status": PENDING, "data": data})
        notifier.dispatch(order_id, data, body.get("photo"))
    except Exception:
        logger.exception("Ошибка обработки заказа %s", order_id)
        return _error(500, SERVER_ERROR)
    return web.json_response({"orderId": order_id})


async def order_status(request: web.Request) -> web.Response:
    order_id = request.match_info["order_id"]
    record = request.app[REGISTRY_KEY].get(order_id)
    logger.info("Проверка статуса %s: %s", order_id, record and record.get("status"))
    if record is None:
        return _error(404, "Заказ не найден", status=PENDING)
    return web.json_response(record)


async def list_orders(request: web.Request) -> web.Response:
    return web.json_response(request.app[REGISTRY_KEY].all())


async def update_status(request: web.Request) -> web.Response:
    order_id = request.match_info["order_id"]
    body = await _json_body(request)
    status = body.get("status")
    logger.info("Обновление статуса %s -> %r", order_id, status)
    if status not in SETTABLE_STATUSES:
        return _error(400, "Неверный статус")
    if not is_valid_order_id(order_id):
        return _error(404, "Заказ не найден")
    try:
        await request.app[REGISTRY_KEY].set_status(order_id, status)
    except OrderNotFound:
        return _error(404, "Заказ не найден")
    except InvalidStatus:
        return _error(400, "Неверный статус")
    except Exception:
        logger.exception("Ошибка обновления статуса %s", order_id)
        return _error(500, SERVER_ERROR)
    return web.json_response({"status": status})


async def health(_request):
    return web.Response(text="ok")


def build_http_app(registry: OrderRegistry, notifier: Notifier, max_body_bytes: int = 10 * 1024 * 1024) -> web.Application:
    app = web.Application(client_max_size=max_body_bytes)
    app[REGISTRY_KEY] = registry
    app[NOTIFIER_KEY] = notifier
    app.router.add_get("/", health)
    app.router.add_get("/healthz", health)
    app.router.add_post("/order", submit_order)
    app.router.add_get("/status/{order_id}", order_status)
    app.router.add_get("/orders", list_orders)
    app.router.add_post("/update-status/{order_id}", update_status)

    cors = aiohttp_cors.setup(app, defaults={
        "*": aiohttp_cors.ResourceOptions(
            allow_credentials=False, expose_headers="*", allow_headers="*", allow_methods="*",
        )
    })
    for route in list(app.router.routes()):
        cors.add(route)
    return app
