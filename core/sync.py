"""
Периодическая синхронизация панелей холста с сервером.

Каждый цикл независимо запрашивает пять ресурсов: регион сетки, эпизод,
сезон, квесты и чат. Для каждого ресурса в полете не больше одного запроса.
Запрос региона помечается поколением вьюпорта; ответ применяется, только если
поколение за время ожидания не изменилось.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from core.api_client import CanvasAPI
from core.config import POLL_INTERVAL_SECONDS
from core.exceptions import RejectionError, TransportError
from core.metrics import ERRORS_TOTAL, LAST_REGION_UPDATE_TS, STALE_REGION_DISCARDS, SYNC_SKIPPED_IN_FLIGHT
from core.models import ChatMessage, EpisodeInfo, Pixel, Quest, SeasonInfo
from core.viewport import ViewportModel

logger = logging.getLogger(__name__)

RESOURCES = ("region", "episode", "season", "quests", "chat")
SYNC_JOB_ID = "canvas_sync"


class SyncScheduler:
    def __init__(
        self,
        api: CanvasAPI,
        viewport: ViewportModel,
        sink,
        interval: float = POLL_INTERVAL_SECONDS,
        scheduler_factory: Callable[[], AsyncIOScheduler] = AsyncIOScheduler,
    ):
        self.api = api
        self.viewport = viewport
        self.sink = sink
        self.interval = interval
        self._scheduler_factory = scheduler_factory
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._in_flight: Dict[str, asyncio.Task] = {}
        # Ресурсы, для которых запрошено обновление, пока предыдущий запрос в полете
        self._pending: Set[str] = set()
        # После stop() ответы запросов в полете уже не применяются
        self._stopped = False
        self._fetchers: Dict[str, Callable[[], Awaitable[None]]] = {
            "region": self._sync_region,
            "episode": self._sync_episode,
            "season": self._sync_season,
            "quests": self._sync_quests,
            "chat": self._sync_chat,
        }

        # Последние примененные данные панелей (заменяются целиком)
        self.pixels: List[Pixel] = []
        self.episode: Optional[EpisodeInfo] = None
        self.season: Optional[SeasonInfo] = None
        self.quests: List[Quest] = []
        self.chat: List[ChatMessage] = []

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None

    def in_flight(self, resource: str) -> bool:
        task = self._in_flight.get(resource)
        return task is not None and not task.done()

    # --- Жизненный цикл ---
    def start(self) -> None:
        """Запускает периодическое обновление. Повторный вызов ничего не делает."""
        if self._scheduler is not None:
            return
        scheduler = self._scheduler_factory()
        scheduler.add_job(
            self._on_interval,
            "interval",
            seconds=self.interval,
            id=SYNC_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        self._stopped = False
        logger.info(f"Синхронизация запущена, интервал {self.interval} с")
        # Первичная загрузка, не дожидаясь первого срабатывания таймера
        self.tick()

    def stop(self) -> None:
        """
        Останавливает таймер. Запросы в полете завершатся сами, но их
        результаты в приемник уже не попадут: он может принадлежать новой сессии.
        """
        if self._scheduler is None:
            return
        self._stopped = True
        try:
            self._scheduler.shutdown(wait=False)
        finally:
            self._scheduler = None
            self._pending.clear()
        logger.info("Синхронизация остановлена")

    async def _on_interval(self) -> None:
        self.tick()

    # --- Запуск запросов ---
    def tick(self) -> None:
        """Один цикл: по запросу на каждый свободный ресурс."""
        for resource in RESOURCES:
            self._launch(resource)

    def refresh_now(self) -> None:
        """Внеочередное обновление только региона сетки (после постановки пикселя)."""
        self.refresh_resource("region")

    def refresh_resource(self, resource: str) -> None:
        """Внеочередное обновление одного ресурса, не трогая расписание остальных."""
        if resource not in self._fetchers:
            raise ValueError(f"Unknown resource: {resource}")
        if self.in_flight(resource):
            # Один повтор сразу после завершения текущего запроса
            self._pending.add(resource)
            return
        self._launch(resource)

    def _launch(self, resource: str) -> bool:
        if self.in_flight(resource):
            SYNC_SKIPPED_IN_FLIGHT.labels(resource=resource).inc()
            return False
        task = asyncio.get_running_loop().create_task(self._run(resource))
        self._in_flight[resource] = task
        return True

    async def _run(self, resource: str) -> None:
        try:
            await self._fetchers[resource]()
        except TransportError as e:
            logger.warning(f"Не удалось обновить {resource}: {e}")
            ERRORS_TOTAL.labels(source="sync").inc()
        except RejectionError as e:
            logger.warning(f"Сервер отказал в обновлении {resource}: {e.reason}")
            ERRORS_TOTAL.labels(source="sync").inc()
        except Exception as e:
            logger.error(f"Ошибка при применении {resource}: {e}", exc_info=True)
            ERRORS_TOTAL.labels(source="sync").inc()
        finally:
            self._in_flight.pop(resource, None)
            if resource in self._pending:
                self._pending.discard(resource)
                # После stop() повторы уже никому не нужны
                if self.is_running:
                    self._launch(resource)

    async def drain(self) -> None:
        """Дожидается завершения всех запросов в полете, включая повторные."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight.values()), return_exceptions=True)

    # --- Ресурсы ---
    def _discard_after_stop(self, resource: str) -> bool:
        if self._stopped:
            logger.debug(f"Ответ {resource} пришел после остановки синхронизации, отброшен")
            return True
        return False

    async def _sync_region(self) -> None:
        region = self.viewport.current_region()
        generation = self.viewport.generation
        pixels = await self.api.get_region(region)
        if self._discard_after_stop("region"):
            return
        if generation != self.viewport.generation:
            # Вьюпорт сдвинулся, пока запрос был в полете
            STALE_REGION_DISCARDS.inc()
            logger.debug(f"Отброшен регион поколения {generation}, текущее {self.viewport.generation}")
            self._pending.add("region")
            return
        self.pixels = pixels
        self.sink.draw_region(region, pixels)
        LAST_REGION_UPDATE_TS.set_to_current_time()

    async def _sync_episode(self) -> None:
        episode = await self.api.get_episode()
        if self._discard_after_stop("episode"):
            return
        self.episode = episode
        self.sink.show_episode(episode)

    async def _sync_season(self) -> None:
        season = await self.api.get_season()
        if self._discard_after_stop("season"):
            return
        self.season = season
        self.sink.show_season(season)

    async def _sync_quests(self) -> None:
        quests = await self.api.get_quests()
        if self._discard_after_stop("quests"):
            return
        self.quests = quests
        self.sink.show_quests(quests)

    async def _sync_chat(self) -> None:
        chat = await self.api.get_chat()
        if self._discard_after_stop("chat"):
            return
        self.chat = chat
        self.sink.show_chat(chat)
