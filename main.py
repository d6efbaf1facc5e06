import asyncio
import logging
import sys

from dotenv import load_dotenv

# .env должен быть загружен до импорта core.config, который читает окружение
load_dotenv()

from prometheus_client import start_http_server
from pythonjsonlogger.json import JsonFormatter

from client.app import CanvasApp
from client.command_parser import HELP_TEXT, parse_command
from client.sink import ConsoleSink
from core.api_client import CanvasAPI
from core.config import API_BASE, LOG_FORMAT, METRICS_PORT
from core.exceptions import ValidationError
from core.token_store import create_token_store


# --- НАСТРОЙКА ЛОГИРОВАНИЯ ---
def setup_logging(log_format: str = LOG_FORMAT):
    """Настраивает логирование: текст по умолчанию, JSON при LOG_FORMAT=json."""
    handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        handler.setFormatter(JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)
    # Планировщик и aiohttp пишут на каждый тик, оставляем только предупреждения
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


async def run_metrics_server(port: int):
    """Запускает HTTP-сервер для Prometheus в отдельном потоке, чтобы не блокировать цикл событий."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(None, start_http_server, port)
    logging.info(f"Prometheus metrics server started on http://localhost:{port}")


async def read_line(prompt: str = "> ") -> str:
    """input() в пуле потоков: опрос сервера продолжается, пока ждем ввода."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, input, prompt)


async def main():
    setup_logging()

    if METRICS_PORT:
        asyncio.create_task(run_metrics_server(int(METRICS_PORT)))

    token_store = create_token_store()
    sink = ConsoleSink()

    async with CanvasAPI(API_BASE) as api:
        app = CanvasApp(api, token_store, sink)
        logging.info(f"Клиент холста запущен, сервер {API_BASE}")
        print(HELP_TEXT)
        try:
            while app.running:
                try:
                    line = await read_line()
                except EOFError:
                    break
                try:
                    command = parse_command(line)
                except ValidationError as e:
                    print(e)
                    continue
                if command is None:
                    if line.strip():
                        print(HELP_TEXT)
                    continue
                await app.dispatch(command)
        finally:
            # Останавливаем опрос до закрытия HTTP-сессии
            app.session.disconnect()
            logging.info("Клиент остановлен.")


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logging.info("Приложение остановлено вручную.")


if __name__ == "__main__":
    run()
