import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from core.api_client import CanvasAPI
from core.config import GUEST_COOLDOWN_SECONDS, MOODS, PALETTE, PIXEL_SIZE, USER_COOLDOWN_SECONDS
from core.exceptions import RejectionError, TransportError
from core.metrics import ERRORS_TOTAL, PLACEMENT_ATTEMPTS

logger = logging.getLogger(__name__)


class PlacementOutcome(Enum):
    PLACED = "placed"
    OUTSIDE = "outside"
    COOLING_DOWN = "cooling_down"
    INVALID = "invalid"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class PlacementResult:
    outcome: PlacementOutcome
    cell: Optional[Tuple[int, int]] = None
    reason: Optional[str] = None

    @property
    def request_sent(self) -> bool:
        return self.outcome in (PlacementOutcome.PLACED, PlacementOutcome.REJECTED, PlacementOutcome.FAILED)


def cooldown_for(user_id: Optional[int]) -> int:
    """5 секунд для вошедших пользователей, 10 для гостей."""
    return USER_COOLDOWN_SECONDS if user_id is not None else GUEST_COOLDOWN_SECONDS


class PixelPlacementController:
    """
    Превращает клик по экрану в запрос постановки пикселя.
    Локальный кулдаун лишь экономит запросы, окончательно решает сервер.
    """

    def __init__(self, api: CanvasAPI, context, refresher, pixel_unit: float = PIXEL_SIZE,
                 palette_size: int = len(PALETTE), mood_count: int = len(MOODS)):
        self.api = api
        self.context = context
        self.refresher = refresher
        self.pixel_unit = pixel_unit
        self.palette_size = palette_size
        self.mood_count = mood_count
        # Запрос постановки в полете: кулдаун еще не запущен, но второй клик уже лишний
        self._placing = False

    def _finish(self, result: PlacementResult) -> PlacementResult:
        PLACEMENT_ATTEMPTS.labels(outcome=result.outcome.value).inc()
        return result

    async def attempt_place(self, screen_x: float, screen_y: float, color_index: int, mood_index: int) -> PlacementResult:
        cell = self.context.viewport.screen_to_cell(screen_x, screen_y, self.pixel_unit)
        if cell is None:
            return self._finish(PlacementResult(PlacementOutcome.OUTSIDE))

        if self._placing:
            return self._finish(PlacementResult(
                PlacementOutcome.COOLING_DOWN, cell, "Please wait, previous pixel is still being placed"
            ))

        if self.context.cooldown.is_active():
            remaining = self.context.cooldown.remaining_seconds()
            return self._finish(PlacementResult(
                PlacementOutcome.COOLING_DOWN, cell, f"Please wait for cooldown! ({remaining}s)"
            ))

        if not 0 <= color_index < self.palette_size:
            return self._finish(PlacementResult(PlacementOutcome.INVALID, cell, f"Unknown color {color_index}"))
        if not 0 <= mood_index < self.mood_count:
            return self._finish(PlacementResult(PlacementOutcome.INVALID, cell, f"Unknown mood {mood_index}"))

        x, y = cell
        identity = self.context.identity
        self._placing = True
        try:
            await self.api.place_pixel(x, y, color_index, mood_index, identity.session_token)
        except RejectionError as e:
            # Сервер не дал поставить пиксель: локальный кулдаун не запускаем
            logger.info(f"Сервер отклонил пиксель ({x}, {y}): {e.reason}")
            return self._finish(PlacementResult(PlacementOutcome.REJECTED, cell, e.reason))
        except TransportError as e:
            logger.error(f"Ошибка при постановке пикселя ({x}, {y}): {e}")
            ERRORS_TOTAL.labels(source="placement").inc()
            return self._finish(PlacementResult(PlacementOutcome.FAILED, cell, "Failed to place pixel"))
        finally:
            self._placing = False

        self.context.cooldown.start(cooldown_for(identity.user_id))
        self.refresher.refresh_now()
        logger.info(f"Пиксель ({x}, {y}) цвета {color_index} поставлен")
        return self._finish(PlacementResult(PlacementOutcome.PLACED, cell))
