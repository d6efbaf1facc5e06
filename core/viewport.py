"""
Модель вьюпорта: масштаб, сдвиг и перевод экранных координат в клетки сетки.

Инвариант после любой операции:
    0 <= pan_x <= grid_size - visible_width
    0 <= pan_y <= grid_size - visible_height
Значения вне диапазона прижимаются к границам, а не отвергаются.
"""

import logging
import math
from typing import Optional, Tuple

from core.config import CANVAS_SIZE, MAX_ZOOM, MIN_ZOOM, ZOOM_STEP
from core.models import Region

logger = logging.getLogger(__name__)


class ViewportModel:
    """Состояние масштаба и сдвига для одной сессии."""

    def __init__(self, grid_size: int = CANVAS_SIZE, min_zoom: float = MIN_ZOOM, max_zoom: float = MAX_ZOOM):
        if grid_size <= 0:
            raise ValueError("grid_size must be positive")
        self.grid_size = grid_size
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self._zoom = 1.0
        self._pan_x = 0.0
        self._pan_y = 0.0
        # Поколение запрашиваемого региона, растет при каждой его смене
        self._generation = 0
        self._region = self._compute_region()

    # --- Состояние ---
    @property
    def zoom(self) -> float:
        return self._zoom

    @property
    def pan_x(self) -> float:
        return self._pan_x

    @property
    def pan_y(self) -> float:
        return self._pan_y

    @property
    def visible_width(self) -> int:
        return math.ceil(self.grid_size / self._zoom)

    @property
    def visible_height(self) -> int:
        return math.ceil(self.grid_size / self._zoom)

    @property
    def generation(self) -> int:
        return self._generation

    # --- Мутации ---
    def set_zoom(self, value: float) -> None:
        """
        Устанавливает масштаб с прижатием к [min_zoom, max_zoom].
        Точка сетки в центре видимой области остается в центре.
        """
        new_zoom = min(max(float(value), self.min_zoom), self.max_zoom)
        if new_zoom == self._zoom:
            return

        old_span = self.grid_size / self._zoom
        center_x = self._pan_x + old_span / 2
        center_y = self._pan_y + old_span / 2

        self._zoom = new_zoom
        new_span = self.grid_size / new_zoom
        self._pan_x = center_x - new_span / 2
        self._pan_y = center_y - new_span / 2
        self._commit()
        logger.debug(f"Масштаб {new_zoom:.3f}, сдвиг ({self._pan_x:.2f}, {self._pan_y:.2f})")

    def zoom_in(self) -> None:
        self.set_zoom(self._zoom * ZOOM_STEP)

    def zoom_out(self) -> None:
        self.set_zoom(self._zoom / ZOOM_STEP)

    def pan(self, dx: float, dy: float) -> None:
        """Сдвигает видимую область на (dx, dy) клеток."""
        self._pan_x += dx
        self._pan_y += dy
        self._commit()

    def set_pan(self, x: float, y: float) -> None:
        self._pan_x = float(x)
        self._pan_y = float(y)
        self._commit()

    def reset_view(self) -> None:
        self._zoom = 1.0
        self._pan_x = 0.0
        self._pan_y = 0.0
        self._commit()

    def clamp(self) -> None:
        """Возвращает сдвиг в допустимый диапазон для текущего масштаба."""
        max_x = self.grid_size - self.visible_width
        max_y = self.grid_size - self.visible_height
        # При zoom < 1 диапазон пуст, остается левый верхний угол
        self._pan_x = max(0.0, min(self._pan_x, max_x))
        self._pan_y = max(0.0, min(self._pan_y, max_y))

    def _compute_region(self) -> Region:
        return Region(
            x=math.floor(self._pan_x),
            y=math.floor(self._pan_y),
            width=self.visible_width,
            height=self.visible_height,
        )

    def _commit(self) -> None:
        self.clamp()
        region = self._compute_region()
        if region != self._region:
            self._region = region
            self._generation += 1

    # --- Запросы ---
    def current_region(self) -> Region:
        """Описание региона для запроса к серверу."""
        self._commit()
        return self._region

    def screen_to_cell(self, px: float, py: float, pixel_unit: float) -> Optional[Tuple[int, int]]:
        """
        Переводит экранную точку в клетку сетки.
        Возвращает None, если точка вне холста: ставить туда пиксель нельзя.
        """
        scale = pixel_unit * self._zoom
        cell_x = math.floor(px / scale + self._pan_x)
        cell_y = math.floor(py / scale + self._pan_y)
        if not (0 <= cell_x < self.grid_size and 0 <= cell_y < self.grid_size):
            return None
        return cell_x, cell_y

    def cell_to_screen(self, x: int, y: int, pixel_unit: float) -> Tuple[float, float, float]:
        """Левый верхний угол клетки на экране и длина ее стороны."""
        size = pixel_unit * self._zoom
        return (x - self._pan_x) * size, (y - self._pan_y) * size, size
