import os, re, logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Mapping, Optional

from dotenv import load_dotenv

from relay_ext.errors import ConfigError

DEFAULT_PORT = 3000
DEFAULT_MAX_BODY_MB = 10

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    bot_token: str = ""
    chat_id: str = ""
    port: int = DEFAULT_PORT
    admin_ids: FrozenSet[int] = field(default_factory=frozenset)
    orders_file: Path = Path("orders.json")
    max_body_bytes: int = DEFAULT_MAX_BODY_MB * 1024 * 1024
    log_level: str = "INFO"

    @property
    def token_tail(self) -> str:
        return f"...{self.bot_token[-6:]}" if self.bot_token else "не задан"


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(name, f"ожидалось целое число, получено {raw!r}") from None


def _admin_ids(env: Mapping[str, str]) -> FrozenSet[int]:
    raw = (env.get("ADMIN_IDS") or "").strip()
    ids = set()
    for part in re.split(r"[\s,;]+", raw):
        if not part:
            continue
        try:
            ids.add(int(part))
        except ValueError:
            raise ConfigError("ADMIN_IDS", f"неверный user_id {part!r}") from None
    return frozenset(ids)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Собирает настройки из окружения (по умолчанию os.environ + .env)."""
    if env is None:
        load_dotenv()
        env = os.environ
    return Settings(
        bot_token=(env.get("TELEGRAM_BOT_TOKEN") or "").strip(),
        chat_id=(env.get("TELEGRAM_CHAT_ID") or "").strip(),
        port=_int(env, "PORT", DEFAULT_PORT),
        admin_ids=_admin_ids(env),
        orders_file=Path((env.get("ORDERS_FILE") or "orders.json").strip()),
        max_body_bytes=_int(env, "MAX_BODY_MB", DEFAULT_MAX_BODY_MB) * 1024 * 1024,
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=getattr(logging, level, logging.INFO))
    # httpx пишет каждый getUpdates на INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
