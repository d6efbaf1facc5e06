import logging
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional

from client.exporter import save_png, save_video
from client.text_formatters import format_history_text
from core import commands as cmd
from core.api_client import CanvasAPI
from core.config import EXPORTS_PATH, MOODS, PALETTE, PNG_EXPORT_SCALE
from core.exceptions import RejectionError, TransportError, ValidationError
from core.metrics import ERRORS_TOTAL
from core.placement import PlacementOutcome
from core.session import SessionContext, SessionMachine
from core.token_store import TokenStore

logger = logging.getLogger(__name__)


class CanvasApp:
    """
    Верхний контроллер приложения. Принимает команды пользователя и передает
    их владельцу: вьюпорту, контроллеру постановки, сессии или API.

    dispatch() никогда не бросает исключений наружу: ошибки превращаются
    в текст уведомления, который также уходит в приемник.
    """

    def __init__(
        self,
        api: CanvasAPI,
        token_store: TokenStore,
        sink,
        session: Optional[SessionMachine] = None,
        exports_dir: Path = EXPORTS_PATH,
        png_scale: int = PNG_EXPORT_SCALE,
    ):
        self.api = api
        self.sink = sink
        self.session = session or SessionMachine(api, token_store, sink)
        self.exports_dir = Path(exports_dir)
        self.png_scale = png_scale
        self.running = True
        self._handlers: Dict[type, Callable[..., Awaitable[Optional[str]]]] = {
            cmd.PlacePixel: self._place_pixel,
            cmd.SelectColor: self._select_color,
            cmd.SelectMood: self._select_mood,
            cmd.ZoomIn: self._zoom_in,
            cmd.ZoomOut: self._zoom_out,
            cmd.ResetView: self._reset_view,
            cmd.Pan: self._pan,
            cmd.SendChat: self._send_chat,
            cmd.Login: self._login,
            cmd.Register: self._register,
            cmd.PlayAsGuest: self._play_as_guest,
            cmd.Logout: self._logout,
            cmd.ExportPng: self._export_png,
            cmd.ExportVideo: self._export_video,
            cmd.ViewHistory: self._view_history,
            cmd.Quit: self._quit,
        }

    async def dispatch(self, command) -> Optional[str]:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Unsupported command: {command!r}")
        try:
            notice = await handler(command)
        except ValidationError as e:
            notice = str(e)
        except RejectionError as e:
            notice = e.reason
        except TransportError as e:
            logger.error(f"Сетевая ошибка при выполнении {type(command).__name__}: {e}")
            ERRORS_TOTAL.labels(source="command").inc()
            notice = "Network error, try again later"
        if notice:
            self.sink.show_notice(notice)
        return notice

    def _require_context(self) -> SessionContext:
        if not self.session.is_connected or self.session.context is None:
            raise ValidationError("Not connected: login or play as guest first")
        return self.session.context

    # --- Холст ---
    async def _place_pixel(self, command: cmd.PlacePixel) -> Optional[str]:
        context = self._require_context()
        result = await self.session.placement.attempt_place(
            command.screen_x, command.screen_y, context.color_index, context.mood_index
        )
        if result.outcome is PlacementOutcome.REJECTED:
            return result.reason or "Failed to place pixel"
        if result.outcome in (PlacementOutcome.COOLING_DOWN, PlacementOutcome.FAILED, PlacementOutcome.INVALID):
            return result.reason
        # PLACED и OUTSIDE ничего не сообщают: кулдаун виден на своей панели
        return None

    async def _select_color(self, command: cmd.SelectColor) -> Optional[str]:
        context = self._require_context()
        if not 0 <= command.index < len(PALETTE):
            raise ValidationError(f"Color must be 0..{len(PALETTE) - 1}")
        context.color_index = command.index
        return None

    async def _select_mood(self, command: cmd.SelectMood) -> Optional[str]:
        context = self._require_context()
        if not 0 <= command.index < len(MOODS):
            raise ValidationError(f"Mood must be 0..{len(MOODS) - 1}")
        context.mood_index = command.index
        return None

    async def _zoom_in(self, command: cmd.ZoomIn) -> Optional[str]:
        self._require_context().viewport.zoom_in()
        self.session.sync.refresh_now()
        return None

    async def _zoom_out(self, command: cmd.ZoomOut) -> Optional[str]:
        self._require_context().viewport.zoom_out()
        self.session.sync.refresh_now()
        return None

    async def _reset_view(self, command: cmd.ResetView) -> Optional[str]:
        self._require_context().viewport.reset_view()
        self.session.sync.refresh_now()
        return None

    async def _pan(self, command: cmd.Pan) -> Optional[str]:
        self._require_context().viewport.pan(command.dx, command.dy)
        self.session.sync.refresh_now()
        return None

    # --- Чат ---
    async def _send_chat(self, command: cmd.SendChat) -> Optional[str]:
        context = self._require_context()
        message = command.text.strip()
        if not message:
            return None
        if context.identity.is_guest:
            raise ValidationError("Please login to chat")
        try:
            await self.api.send_chat(message, context.identity.session_token)
        except RejectionError as e:
            return f"Failed to send: {e.reason}"
        self.session.sync.refresh_resource("chat")
        return None

    # --- Сессия ---
    async def _login(self, command: cmd.Login) -> Optional[str]:
        await self.session.login(command.email, command.password)
        return None

    async def _register(self, command: cmd.Register) -> Optional[str]:
        await self.session.register(command.email, command.username, command.password)
        return None

    async def _play_as_guest(self, command: cmd.PlayAsGuest) -> Optional[str]:
        await self.session.play_as_guest()
        return "Playing as guest: login to chat and get a shorter cooldown"

    async def _logout(self, command: cmd.Logout) -> Optional[str]:
        await self.session.logout()
        return None

    # --- Экспорт и история ---
    async def _export_png(self, command: cmd.ExportPng) -> Optional[str]:
        data = await self.api.export_png()
        path = save_png(data, command.path or self.exports_dir / "canvas.png", scale=self.png_scale)
        return f"Saved {path}"

    async def _export_video(self, command: cmd.ExportVideo) -> Optional[str]:
        data = await self.api.export_video()
        path = save_video(data, command.path or self.exports_dir / "canvas_replay.mp4")
        return f"Saved {path}"

    async def _view_history(self, command: cmd.ViewHistory) -> Optional[str]:
        return format_history_text(await self.api.get_history())

    async def _quit(self, command: cmd.Quit) -> Optional[str]:
        self.running = False
        self.session.disconnect()
        return None
