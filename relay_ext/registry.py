"""In-memory реестр заказов поверх OrderStore.

Все изменения проходят через один asyncio.Lock: запись в память и сохранение
файла выполняются вместе, поэтому файл всегда отражает последнее изменение.
"""
from __future__ import annotations
import asyncio, copy, logging
from typing import Dict, List, Literal, Optional

from relay_ext.errors import InvalidStatus, OrderNotFound
from relay_ext.store import OrderStore

logger = logging.getLogger(__name__)

OrderStatus = Literal["pending", "approved", "rejected"]
PENDING: OrderStatus = "pending"
APPROVED: OrderStatus = "approved"
REJECTED: OrderStatus = "rejected"
SETTABLE_STATUSES = (APPROVED, REJECTED)


class OrderRegistry:
    def __init__(self, store: OrderStore, orders: Optional[Dict[str, dict]] = None):
        self.store = store
        self._orders: Dict[str, dict] = dict(orders or {})
        self._lock = asyncio.Lock()

    @classmethod
    def from_store(cls, store: OrderStore) -> "OrderRegistry":
        orders = store.load()
        logger.info("Загружено заказов: %d", len(orders))
        return cls(store, orders)

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id) -> bool:
        return order_id in self._orders

    def get(self, order_id: str) -> Optional[dict]:
        rec = self._orders.get(order_id)
        return copy.deepcopy(rec) if rec is not None else None

    def all(self) -> Dict[str, dict]:
        return copy.deepcopy(self._orders)

    def ids(self) -> List[str]:
        return list(self._orders)

    async def create(self, order_id: str, record: dict) -> dict:
        """Создаёт или перезаписывает запись (повторный ID затирает старую)."""
        async with self._lock:
            if order_id in self._orders:
                logger.warning("Заказ %s уже есть, перезаписываем", order_id)
            self._orders[order_id] = copy.deepcopy(record)
            await self.store.save(self._orders)
        logger.info("Заказ %s сохранён со статусом %s", order_id, record.get("status"))
        return self.get(order_id)

    async def set_status(self, order_id: str, status: str) -> dict:
        if status not in SETTABLE_STATUSES:
            raise InvalidStatus(status)
        async with self._lock:
            rec = self._orders.get(order_id)
            if rec is None:
                raise OrderNotFound(order_id)
            rec["status"] = status
            await self.store.save(self._orders)
        logger.info("Статус заказа %s -> %s", order_id, status)
        return self.get(order_id)
