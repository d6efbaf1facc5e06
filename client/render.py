"""
Решает, что рисовать: прямоугольники клеток в экранных координатах.
Сама отрисовка (Canvas, Qt, терминал) остается за приемником.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from core.config import FALLBACK_COLOR, PALETTE, PIXEL_SIZE
from core.models import Pixel
from core.viewport import ViewportModel


@dataclass(frozen=True)
class DrawRect:
    x: float
    y: float
    size: float
    color: str


def color_for(color_index: int, palette: Sequence[str] = PALETTE) -> str:
    if 0 <= color_index < len(palette):
        return palette[color_index]
    return FALLBACK_COLOR


def surface_size(viewport: ViewportModel, pixel_unit: float = PIXEL_SIZE) -> int:
    """Сторона поверхности рисования в пикселях при текущем масштабе."""
    return int(viewport.grid_size * pixel_unit * viewport.zoom)


def build_draw_commands(
    pixels: Iterable[Pixel],
    viewport: ViewportModel,
    pixel_unit: float = PIXEL_SIZE,
    palette: Sequence[str] = PALETTE,
) -> List[DrawRect]:
    commands = []
    for pixel in pixels:
        x, y, size = viewport.cell_to_screen(pixel.x, pixel.y, pixel_unit)
        commands.append(DrawRect(x, y, size, color_for(pixel.color_index, palette)))
    return commands


def visible_commands(commands: Iterable[DrawRect], side: float) -> List[DrawRect]:
    """Прямоугольники, хотя бы частично попадающие на поверхность side x side."""
    return [c for c in commands if c.x < side and c.y < side and c.x + c.size > 0 and c.y + c.size > 0]
