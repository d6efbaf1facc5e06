"""
Клиентский кулдаун на постановку пикселей.

Состояния: Idle и Active(ends_at). Переход Active -> Idle происходит ровно
тогда, когда оставшееся время доходит до нуля. Кулдаун носит рекомендательный
характер: сервер может отказать и при Idle (рассинхрон часов, свой лимит).
"""

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Callable, List, Optional

from core.config import COOLDOWN_TICK_SECONDS
from core.metrics import COOLDOWN_REMAINING

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]


class CooldownState(Enum):
    IDLE = "idle"
    ACTIVE = "active"


class CooldownGate:
    def __init__(self, clock: Callable[[], float] = time.monotonic, tick_interval: float = COOLDOWN_TICK_SECONDS):
        self._clock = clock
        self.tick_interval = tick_interval
        self._state = CooldownState.IDLE
        self._ends_at: Optional[float] = None
        self._callbacks: List[TickCallback] = []
        self._timer_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CooldownState:
        self._observe()
        return self._state

    @property
    def ends_at(self) -> Optional[float]:
        self._observe()
        return self._ends_at

    def _observe(self) -> float:
        """Пересчитывает состояние на текущий момент, возвращает остаток в секундах."""
        if self._state is CooldownState.IDLE:
            return 0.0
        remaining = self._ends_at - self._clock()
        if remaining <= 0:
            self._state = CooldownState.IDLE
            self._ends_at = None
            return 0.0
        return remaining

    def start(self, duration_seconds: float) -> None:
        """Запускает кулдаун. Вызывается только после подтвержденной постановки пикселя."""
        if duration_seconds <= 0:
            return
        self._ends_at = self._clock() + duration_seconds
        self._state = CooldownState.ACTIVE
        logger.info(f"Кулдаун запущен на {duration_seconds} с")
        self._ensure_display_timer()

    def is_active(self) -> bool:
        return self._observe() > 0

    def remaining_seconds(self) -> int:
        """Оставшееся время, округленное вверх; 0 в состоянии Idle."""
        return math.ceil(self._observe())

    def on_tick(self, callback: TickCallback) -> Callable[[], None]:
        """
        Подписывает отображение на изменения оставшегося времени.
        Возвращает функцию отписки.
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def _notify(self, remaining: int) -> None:
        COOLDOWN_REMAINING.set(remaining)
        for callback in list(self._callbacks):
            try:
                callback(remaining)
            except Exception as e:
                logger.error(f"Ошибка в подписчике кулдауна: {e}")

    def _ensure_display_timer(self) -> None:
        if self._timer_task is not None and not self._timer_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Без цикла событий таймер отображения не нужен (синхронное использование)
            self._notify(self.remaining_seconds())
            return
        self._timer_task = loop.create_task(self._run_display_timer())

    async def _run_display_timer(self) -> None:
        """Перепланируется каждые tick_interval, пока кулдаун активен."""
        last: Optional[int] = None
        while True:
            remaining = self.remaining_seconds()
            if remaining != last:
                self._notify(remaining)
                last = remaining
            if remaining <= 0:
                logger.debug("Кулдаун завершен")
                return
            await asyncio.sleep(self.tick_interval)

    async def wait_idle(self) -> None:
        """Дожидается окончания таймера отображения (удобно для тестов и завершения)."""
        if self._timer_task is not None:
            await self._timer_task
