import asyncio
import os
import sys
from typing import List

import pytest

# Добавляем корневую директорию проекта в пути поиска модулей
# Это гарантирует, что pytest найдет папки 'core' и 'client'
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# Set up test environment variables
os.environ.setdefault("CANVAS_API_BASE", "http://canvas.test/api")

# Fix asyncio transport warnings on Windows by using selector event loop policy
if sys.platform.startswith("win"):
    try:
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    except Exception:
        pass

from core.exceptions import RejectionError, TransportError  # noqa: E402
from core.models import (  # noqa: E402
    AuthResult, ChatMessage, EpisodeInfo, HistoryEntry, Pixel, Quest, Region, SeasonInfo,
)


async def _settle(rounds: int = 10):
    """Дает циклу событий доработать запущенные задачи."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeScheduler:
    """Заменяет AsyncIOScheduler: таймер не тикает сам, тесты зовут tick() явно."""

    def __init__(self):
        self.jobs = []
        self.started = False
        self.shutdown_called = False

    def add_job(self, func, trigger, **kwargs):
        self.jobs.append((func, trigger, kwargs))

    def start(self):
        self.started = True

    def shutdown(self, wait=True):
        self.shutdown_called = True


class RecordingSink:
    def __init__(self):
        self.regions = []
        self.episodes = []
        self.seasons = []
        self.quests = []
        self.chats = []
        self.cooldowns: List[int] = []
        self.notices: List[str] = []
        self.viewport = None

    def bind_viewport(self, viewport):
        self.viewport = viewport

    def draw_region(self, region, pixels):
        self.regions.append((region, list(pixels)))

    def show_episode(self, episode):
        self.episodes.append(episode)

    def show_season(self, season):
        self.seasons.append(season)

    def show_quests(self, quests):
        self.quests.append(list(quests))

    def show_chat(self, messages):
        self.chats.append(list(messages))

    def show_cooldown(self, remaining):
        self.cooldowns.append(remaining)

    def show_notice(self, text):
        self.notices.append(text)


class FakeCanvasAPI:
    """Сервер холста в памяти. Ответы по региону можно задерживать до release_region()."""

    def __init__(self):
        self.fail = set()
        self.hold_region = False
        self.region_calls: List[Region] = []
        self._region_waiters = []
        self.calls = {"episode": 0, "season": 0, "quests": 0, "chat": 0}
        self.place_calls = []
        self.place_error = None
        self.chat_sent = []
        self.auth = AuthResult("sess_server", 42)
        self.auth_error = None
        self.history = [HistoryEntry(1, 1700000000)]
        self.png = b""
        self.video = b"\x00\x00video"

    def _maybe_fail(self, resource):
        if resource in self.fail:
            raise TransportError(f"{resource}: boom")

    async def get_region(self, region):
        self.region_calls.append(region)
        self._maybe_fail("region")
        if self.hold_region:
            future = asyncio.get_running_loop().create_future()
            self._region_waiters.append(future)
            return await future
        return [Pixel(region.x, region.y, 1)]

    def release_region(self, pixels, index: int = 0):
        self._region_waiters.pop(index).set_result(pixels)

    @property
    def pending_regions(self) -> int:
        return len(self._region_waiters)

    async def get_episode(self):
        self.calls["episode"] += 1
        self._maybe_fail("episode")
        return EpisodeInfo(3, 125)

    async def get_season(self):
        self.calls["season"] += 1
        self._maybe_fail("season")
        return SeasonInfo("Winter")

    async def get_quests(self):
        self.calls["quests"] += 1
        self._maybe_fail("quests")
        return [Quest("Place 10 red pixels", 4, 10, False)]

    async def get_chat(self):
        self.calls["chat"] += 1
        self._maybe_fail("chat")
        return [ChatMessage("alice", "hi"), ChatMessage("bob", "hello")]

    async def place_pixel(self, x, y, color_index, mood_index, session_token):
        self.place_calls.append((x, y, color_index, mood_index, session_token))
        if self.place_error is not None:
            raise self.place_error

    async def send_chat(self, message, session_token):
        self._maybe_fail("send_chat")
        self.chat_sent.append((message, session_token))

    async def login(self, email, password):
        if self.auth_error is not None:
            raise self.auth_error
        return self.auth

    async def register(self, email, username, password):
        if self.auth_error is not None:
            raise self.auth_error
        return self.auth

    async def get_history(self):
        self._maybe_fail("history")
        return self.history

    async def export_png(self):
        self._maybe_fail("export_png")
        return self.png

    async def export_video(self):
        if "export_video" in self.fail:
            raise RejectionError("Failed to generate video. Ensure FFmpeg is installed.", status=500)
        return self.video


class MemoryTokenStore:
    def __init__(self, token=None):
        self.token = token
        self.saved = []

    async def load(self):
        return self.token

    async def save(self, token):
        self.token = token
        self.saved.append(token)

    async def clear(self):
        self.token = None

    async def load_or_create(self):
        if not self.token:
            await self.save("sess_generated")
        return self.token


@pytest.fixture
def fake_api():
    return FakeCanvasAPI()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_scheduler_factory():
    """Фабрика, запоминающая созданные планировщики."""
    created = []

    def factory():
        scheduler = FakeScheduler()
        created.append(scheduler)
        return scheduler

    factory.created = created
    return factory


@pytest.fixture
def token_store():
    return MemoryTokenStore()


@pytest.fixture
def settle():
    return _settle
