"""
Сессия клиента: личность пользователя и состояние, живущее от входа до выхода.

Машина состояний DISCONNECTED <-> CONNECTED. Переход в CONNECTED создает
контекст сессии и запускает синхронизацию, выход из него - останавливает.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from core.api_client import CanvasAPI
from core.config import DEFAULT_COLOR_INDEX, DEFAULT_MOOD_INDEX
from core.cooldown import CooldownGate
from core.exceptions import ValidationError
from core.metrics import SESSION_CONNECTED
from core.placement import PixelPlacementController
from core.sync import SyncScheduler
from core.token_store import TokenStore
from core.viewport import ViewportModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    session_token: str
    user_id: Optional[int] = None  # None - гость

    @property
    def is_guest(self) -> bool:
        return self.user_id is None


@dataclass
class SessionContext:
    """Все изменяемое состояние одной сессии. Между сессиями не переиспользуется."""
    identity: Identity
    viewport: ViewportModel = field(default_factory=ViewportModel)
    cooldown: CooldownGate = field(default_factory=CooldownGate)
    color_index: int = DEFAULT_COLOR_INDEX
    mood_index: int = DEFAULT_MOOD_INDEX


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class SessionMachine:
    def __init__(
        self,
        api: CanvasAPI,
        token_store: TokenStore,
        sink,
        sync_factory: Callable[..., SyncScheduler] = SyncScheduler,
    ):
        self.api = api
        self.token_store = token_store
        self.sink = sink
        self._sync_factory = sync_factory
        self.state = SessionState.DISCONNECTED
        self.context: Optional[SessionContext] = None
        self.sync: Optional[SyncScheduler] = None
        self.placement: Optional[PixelPlacementController] = None
        self._unsubscribe_cooldown: Optional[Callable[[], None]] = None

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    # --- Переходы ---
    def connect(self, identity: Identity) -> SessionContext:
        if self.is_connected:
            # Смена личности (гость -> вход) начинает новую сессию
            self.disconnect()

        context = SessionContext(identity=identity)
        sync = self._sync_factory(self.api, context.viewport, self.sink)
        self._unsubscribe_cooldown = context.cooldown.on_tick(self.sink.show_cooldown)
        self.sink.bind_viewport(context.viewport)

        self.context = context
        self.sync = sync
        self.placement = PixelPlacementController(self.api, context, sync)
        self.state = SessionState.CONNECTED
        SESSION_CONNECTED.set(1)
        sync.start()
        who = "гость" if identity.is_guest else f"user_id={identity.user_id}"
        logger.info(f"Сессия подключена ({who})")
        return context

    def disconnect(self) -> None:
        if not self.is_connected:
            return
        if self.sync is not None:
            self.sync.stop()
        # Таймер старого кулдауна может еще тикать: отвязываем его от приемника
        if self._unsubscribe_cooldown is not None:
            self._unsubscribe_cooldown()
            self._unsubscribe_cooldown = None
        self.sink.bind_viewport(None)
        self.context = None
        self.sync = None
        self.placement = None
        self.state = SessionState.DISCONNECTED
        SESSION_CONNECTED.set(0)
        logger.info("Сессия отключена")

    # --- Операции пользователя ---
    async def login(self, email: str, password: str) -> SessionContext:
        if not email or not password:
            raise ValidationError("Email and password are required")
        auth = await self.api.login(email, password)
        await self.token_store.save(auth.session_token)
        return self.connect(Identity(auth.session_token, auth.user_id))

    async def register(self, email: str, username: str, password: str) -> SessionContext:
        if not email or not username or not password:
            raise ValidationError("Missing fields")
        auth = await self.api.register(email, username, password)
        await self.token_store.save(auth.session_token)
        return self.connect(Identity(auth.session_token, auth.user_id))

    async def play_as_guest(self) -> SessionContext:
        token = await self.token_store.load_or_create()
        return self.connect(Identity(token, None))

    async def logout(self) -> None:
        """Забывает токен: следующий вход гостем получит новый анонимный."""
        self.disconnect()
        await self.token_store.clear()
