import logging
from typing import Callable, Dict, List, Optional, Protocol

from client.render import DrawRect, build_draw_commands, surface_size, visible_commands
from client.text_formatters import (
    format_chat_text, format_cooldown_text, format_episode_text, format_quests_text, format_season_text,
)
from core.config import PIXEL_SIZE
from core.models import ChatMessage, EpisodeInfo, Pixel, Quest, Region, SeasonInfo
from core.viewport import ViewportModel

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    """Граница с отрисовкой: получает готовые данные панелей."""

    def bind_viewport(self, viewport: Optional[ViewportModel]) -> None: ...

    def draw_region(self, region: Region, pixels: List[Pixel]) -> None: ...

    def show_episode(self, episode: EpisodeInfo) -> None: ...

    def show_season(self, season: SeasonInfo) -> None: ...

    def show_quests(self, quests: List[Quest]) -> None: ...

    def show_chat(self, messages: List[ChatMessage]) -> None: ...

    def show_cooldown(self, remaining: int) -> None: ...

    def show_notice(self, text: str) -> None: ...


class ConsoleSink:
    """
    Текстовый приемник для консольного клиента.
    Печатает панель только когда ее текст изменился, иначе опрос раз в секунду
    заваливал бы вывод одинаковыми строками.
    """

    def __init__(self, write: Callable[[str], None] = print, chat_limit: int = 10, pixel_unit: float = PIXEL_SIZE):
        self._write = write
        self.chat_limit = chat_limit
        self.pixel_unit = pixel_unit
        self.viewport: Optional[ViewportModel] = None
        # Что рисовать на поверхности при текущем вьюпорте
        self.frame: List[DrawRect] = []
        self._last: Dict[str, str] = {}
        self.region: Optional[Region] = None
        self.pixels: List[Pixel] = []

    def _emit(self, panel: str, text: str) -> None:
        if self._last.get(panel) == text:
            return
        self._last[panel] = text
        self._write(text)

    def bind_viewport(self, viewport: Optional[ViewportModel]) -> None:
        self.viewport = viewport
        self.frame = []

    def draw_region(self, region: Region, pixels: List[Pixel]) -> None:
        self.region = region
        self.pixels = list(pixels)
        logger.debug(f"Регион {region.as_params()}: {len(pixels)} пикселей")
        text = f"Canvas ({region.x},{region.y}) {region.width}x{region.height}: {len(pixels)} pixels"
        if self.viewport is not None:
            side = surface_size(self.viewport, self.pixel_unit)
            self.frame = visible_commands(build_draw_commands(pixels, self.viewport, self.pixel_unit), side)
            text += f", {len(self.frame)} on screen {side}x{side}"
        self._emit("region", text)

    def show_episode(self, episode: EpisodeInfo) -> None:
        self._emit("episode", format_episode_text(episode))

    def show_season(self, season: SeasonInfo) -> None:
        self._emit("season", format_season_text(season))

    def show_quests(self, quests: List[Quest]) -> None:
        self._emit("quests", format_quests_text(quests))

    def show_chat(self, messages: List[ChatMessage]) -> None:
        text = format_chat_text(messages, self.chat_limit)
        if text:
            self._emit("chat", text)

    def show_cooldown(self, remaining: int) -> None:
        self._emit("cooldown", format_cooldown_text(remaining))

    def show_notice(self, text: str) -> None:
        self._write(text)
