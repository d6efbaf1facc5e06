import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from core.config import API_BASE, EXPORT_TIMEOUT_SECONDS, REQUEST_TIMEOUT_SECONDS
from core.exceptions import RejectionError, TransportError
from core.metrics import API_REQUESTS, API_RESPONSE_TIME
from core.models import AuthResult, ChatMessage, EpisodeInfo, HistoryEntry, Pixel, Quest, Region, SeasonInfo

logger = logging.getLogger(__name__)


class CanvasAPI:
    """HTTP-клиент сервера холста (JSON поверх aiohttp)."""

    ENDPOINTS = {
        "place_pixel": "place_pixel",
        "region": "canvas",
        "login": "login",
        "register": "register",
        "episode": "episode",
        "season": "season",
        "quests": "quests",
        "chat": "chat",
        "export_png": "export_png",
        "export_video": "export_video",
        "history": "history",
    }

    def __init__(self, base_url: str = API_BASE, session: Optional[aiohttp.ClientSession] = None,
                 timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self._owns_session = session is None
        self.timeout = timeout

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self.session is not None and self._owns_session:
            await self.session.close()
            self.session = None

    def _url(self, resource: str) -> str:
        return f"{self.base_url}/{self.ENDPOINTS[resource]}"

    async def _request(
        self,
        method: str,
        resource: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Dict[str, Any]] = None,
        binary: bool = False,
        timeout: Optional[float] = None,
        bust_cache: bool = False,
        require_success: bool = False,
    ) -> Any:
        """
        Выполняет запрос и возвращает разобранный JSON (или байты при binary=True).

        Raises:
            TransportError: сеть, таймаут, неразборчивый ответ
            RejectionError: сервер вернул success=false или HTTP-ошибку с полем error;
                при require_success=True также любой ответ без success=true
        """
        if self.session is None:
            self.session = aiohttp.ClientSession()
        query = dict(params or {})
        if bust_cache:
            # Сервер и прокси не должны отдавать закэшированный ответ
            query["t"] = int(time.time() * 1000)
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.timeout)

        try:
            with API_RESPONSE_TIME.labels(api_endpoint=resource, method=method).time():
                async with self.session.request(
                    method, self._url(resource), params=query or None, json=payload, timeout=client_timeout
                ) as response:
                    status = response.status
                    content_type = response.headers.get("Content-Type", "") if response.headers else ""
                    if binary and status < 400 and "json" not in content_type:
                        body: Any = await response.read()
                    else:
                        try:
                            body = await response.json(content_type=None)
                        except ValueError as e:
                            API_REQUESTS.labels(resource=resource, status="transport_error").inc()
                            raise TransportError(f"{resource}: invalid JSON (HTTP {status})") from e
        except asyncio.TimeoutError as e:
            API_REQUESTS.labels(resource=resource, status="transport_error").inc()
            raise TransportError(f"{resource}: timeout") from e
        except aiohttp.ClientError as e:
            API_REQUESTS.labels(resource=resource, status="transport_error").inc()
            raise TransportError(f"{resource}: {e}") from e

        if isinstance(body, dict):
            # Экспорт вместо файла может вернуть {error}
            rejected = body.get("success") is False or (bool(body.get("error")) and (status >= 400 or binary))
            if rejected:
                API_REQUESTS.labels(resource=resource, status="rejected").inc()
                raise RejectionError(body.get("error"), status=status)
        if status >= 400:
            API_REQUESTS.labels(resource=resource, status="transport_error").inc()
            raise TransportError(f"{resource}: HTTP {status}")
        if require_success and not (isinstance(body, dict) and body.get("success") is True):
            # Запись считается выполненной только при явном success: true
            API_REQUESTS.labels(resource=resource, status="rejected").inc()
            raise RejectionError(body.get("error") if isinstance(body, dict) else None, status=status)

        API_REQUESTS.labels(resource=resource, status="ok").inc()
        return body

    @staticmethod
    def _parse(resource: str, parser, data: Any):
        """Оборачивает ошибки разбора полезной нагрузки в TransportError."""
        try:
            return parser(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise TransportError(f"{resource}: malformed payload ({e})") from e

    # --- Запись ---
    async def place_pixel(self, x: int, y: int, color_index: int, mood_index: int, session_token: str) -> None:
        payload = {
            "x": x,
            "y": y,
            "colorIndex": color_index,
            "moodIndex": mood_index,
            "sessionToken": session_token,
            # Имена полей, которые читает развернутый сервер
            "color": color_index,
            "mood": mood_index,
            "sessionId": session_token,
        }
        await self._request("POST", "place_pixel", payload=payload, require_success=True)

    async def login(self, email: str, password: str) -> AuthResult:
        data = await self._request(
            "POST", "login", payload={"email": email, "password": password}, require_success=True
        )
        return self._parse("login", AuthResult.from_dict, data)

    async def register(self, email: str, username: str, password: str) -> AuthResult:
        data = await self._request(
            "POST", "register", payload={"email": email, "username": username, "password": password},
            require_success=True,
        )
        return self._parse("register", AuthResult.from_dict, data)

    async def send_chat(self, message: str, session_token: str) -> None:
        payload = {"message": message, "sessionToken": session_token, "sessionId": session_token}
        await self._request("POST", "chat", payload=payload, require_success=True)

    # --- Чтение ---
    async def get_region(self, region: Region) -> List[Pixel]:
        data = await self._request("GET", "region", params=region.as_params(), bust_cache=True)
        return self._parse("region", lambda d: [Pixel.from_dict(p) for p in d.get("pixels") or []], data)

    async def get_episode(self) -> EpisodeInfo:
        data = await self._request("GET", "episode", bust_cache=True)
        return self._parse("episode", EpisodeInfo.from_dict, data)

    async def get_season(self) -> SeasonInfo:
        data = await self._request("GET", "season", bust_cache=True)
        return self._parse("season", SeasonInfo.from_dict, data)

    async def get_quests(self) -> List[Quest]:
        data = await self._request("GET", "quests", bust_cache=True)
        return self._parse("quests", lambda d: [Quest.from_dict(q) for q in d["quests"]], data)

    async def get_chat(self) -> List[ChatMessage]:
        data = await self._request("GET", "chat", bust_cache=True)
        return self._parse("chat", lambda d: [ChatMessage.from_dict(m) for m in d["messages"]], data)

    async def get_history(self) -> List[HistoryEntry]:
        data = await self._request("GET", "history")
        return self._parse("history", lambda d: [HistoryEntry.from_dict(e) for e in d["episodes"]], data)

    async def export_png(self) -> bytes:
        data = await self._request("GET", "export_png", binary=True, timeout=EXPORT_TIMEOUT_SECONDS)
        if not isinstance(data, (bytes, bytearray)):
            raise TransportError("export_png: expected binary body")
        return bytes(data)

    async def export_video(self) -> bytes:
        data = await self._request("GET", "export_video", binary=True, timeout=EXPORT_TIMEOUT_SECONDS)
        if not isinstance(data, (bytes, bytearray)):
            raise TransportError("export_video: expected binary body")
        return bytes(data)
