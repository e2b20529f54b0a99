import re
from typing import Optional

from relay_ext.errors import InvalidOrderId

ORDER_ID_RE = re.compile(r"^#[0-9A-Za-z]{4}$")
_TOKEN_RE = re.compile(r"^[0-9A-Za-z]{1,4}$")


def is_valid_order_id(value) -> bool:
    return isinstance(value, str) and bool(ORDER_ID_RE.match(value))


def ensure_order_id(value) -> str:
    if not is_valid_order_id(value):
        raise InvalidOrderId(value)
    return value


def normalize_token(token: Optional[str]) -> Optional[str]:
    """Приводит токен из команды к виду '#XXXX'.

    '1234' -> '#1234', '#1234' -> '#1234', '12' -> '#0012'.
    Пустой токен, длиннее 4 символов или не буквенно-цифровой -> None.
    """
    if token is None:
        return None
    s = token.strip()
    if s.startswith("#"):
        s = s[1:]
    if not _TOKEN_RE.match(s):
        return None
    return "#" + s.rjust(4, "0")
