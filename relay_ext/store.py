import os, json, asyncio, logging, tempfile
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)


class OrderStore:
    """JSON-файл с картой ID заказа -> запись."""

    def __init__(self, path):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def load(self) -> Dict[str, dict]:
        if not self.path.exists():
            logger.info("Файл %s не найден, начинаем с пустого списка заказов", self.path)
            return {}
        try:
            data = json.loads(self.path.read_text("utf-8"))
        except Exception:
            logger.exception("Не удалось прочитать %s, заказы не загружены", self.path)
            return {}
        if not isinstance(data, dict):
            logger.error("В %s не объект JSON (%s), заказы не загружены", self.path, type(data).__name__)
            return {}
        return data

    def _write(self, text: str):
        # пишем во временный файл рядом и подменяем целиком
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    async def save(self, orders: Dict[str, dict]) -> bool:
        text = json.dumps(orders, ensure_ascii=False, indent=2)
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, text)
            except Exception:
                logger.exception("Не удалось сохранить заказы в %s", self.path)
                return False
        return True
