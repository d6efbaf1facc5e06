"""
Долговременное хранение токена сессии между перезапусками клиента.

По умолчанию токен лежит в JSON-файле; если задан REDIS_URL - в Redis.
Отсутствие записи означает, что нужно выдать новый анонимный токен.
"""

import json
import logging
import secrets
import time
from pathlib import Path
from typing import Optional

from redis.asyncio.client import Redis

from core.config import REDIS_SESSION_KEY, REDIS_URL, SESSION_FILE_PATH

logger = logging.getLogger(__name__)

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def generate_session_token() -> str:
    """Анонимный токен вида sess_<16 случайных символов><время в base36>."""
    random_part = "".join(secrets.choice(_ALPHABET) for _ in range(16))
    return f"sess_{random_part}{_to_base36(int(time.time() * 1000))}"


class TokenStore:
    """Общий интерфейс хранилища токена."""

    async def load(self) -> Optional[str]:
        raise NotImplementedError

    async def save(self, token: str) -> None:
        raise NotImplementedError

    async def clear(self) -> None:
        raise NotImplementedError

    async def load_or_create(self) -> str:
        token = await self.load()
        if token:
            return token
        token = generate_session_token()
        await self.save(token)
        logger.info("Создан новый анонимный токен сессии")
        return token


class FileTokenStore(TokenStore):
    def __init__(self, path: Path = SESSION_FILE_PATH):
        self.path = Path(path)

    async def load(self) -> Optional[str]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Не удалось прочитать файл сессии {self.path}: {e}")
            return None
        token = data.get("sessionToken") if isinstance(data, dict) else None
        return token or None

    async def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({"sessionToken": token}, f)

    async def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class RedisTokenStore(TokenStore):
    def __init__(self, redis_client: Redis, key: str = REDIS_SESSION_KEY):
        self.redis = redis_client
        self.key = key

    async def load(self) -> Optional[str]:
        raw = await self.redis.get(self.key)
        if not raw:
            return None
        return raw.decode() if isinstance(raw, bytes) else str(raw)

    async def save(self, token: str) -> None:
        await self.redis.set(self.key, token)

    async def clear(self) -> None:
        await self.redis.delete(self.key)


def create_token_store(redis_url: Optional[str] = REDIS_URL) -> TokenStore:
    if redis_url:
        logger.info("Токен сессии хранится в Redis")
        return RedisTokenStore(Redis.from_url(redis_url))
    return FileTokenStore()
