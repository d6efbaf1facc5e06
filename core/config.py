import os
from pathlib import Path

import pytz

# Определяем базовую директорию проекта
BASE_DIR = Path(__file__).resolve().parent.parent

# --- Сервер холста ---
API_BASE = os.getenv("CANVAS_API_BASE", "http://localhost:8080/api")
# Таймаут одного HTTP-запроса к серверу (секунды)
REQUEST_TIMEOUT_SECONDS = float(os.getenv("CANVAS_REQUEST_TIMEOUT", 5))
# Экспорт видео на сервере может идти около минуты
EXPORT_TIMEOUT_SECONDS = float(os.getenv("CANVAS_EXPORT_TIMEOUT", 120))

# --- Геометрия холста ---
CANVAS_SIZE = int(os.getenv("CANVAS_SIZE", 50))  # Сетка CANVAS_SIZE x CANVAS_SIZE клеток
PIXEL_SIZE = 10  # Базовый размер клетки на экране в пикселях
MIN_ZOOM = 0.5
MAX_ZOOM = 5.0
ZOOM_STEP = 1.5  # Множитель для кнопок zoom in / zoom out

# --- Палитра (совпадает с серверной, порядок важен) ---
PALETTE = [
    '#000000', '#FF0000', '#0000FF', '#00FF00',
    '#FFFF00', '#FF00FF', '#00FFFF', '#FF8000',
    '#8000FF', '#008000', '#808080', '#FFC0CB',
    '#A52A2A', '#FFD700', '#40E0D0', '#FFFFFF',
]
FALLBACK_COLOR = '#FFFFFF'
MOODS = ['angry', 'sad', 'neutral', 'happy', 'excited']
DEFAULT_COLOR_INDEX = 0
DEFAULT_MOOD_INDEX = 2

# --- Кулдаун (секунды) ---
USER_COOLDOWN_SECONDS = 5
GUEST_COOLDOWN_SECONDS = 10
COOLDOWN_TICK_SECONDS = 0.1

# --- Синхронизация ---
POLL_INTERVAL_SECONDS = float(os.getenv("CANVAS_POLL_INTERVAL", 1.0))

# --- Локальное состояние ---
# Файл, в котором хранится токен сессии между перезапусками
SESSION_FILE_PATH = Path(os.getenv("CANVAS_SESSION_FILE", BASE_DIR / "data" / "session.json"))
# Если задан, токен хранится в Redis вместо файла
REDIS_URL = os.getenv("REDIS_URL")
REDIS_SESSION_KEY = "canvas:session_token"

# --- Экспорт ---
EXPORTS_PATH = Path(os.getenv("CANVAS_EXPORTS_DIR", BASE_DIR / "exports"))
PNG_EXPORT_SCALE = int(os.getenv("CANVAS_PNG_SCALE", 10))

# --- Прочее ---
LOCAL_TZ = pytz.timezone(os.getenv("CANVAS_TZ", "Europe/Moscow"))
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # 'text' или 'json'
METRICS_PORT = os.getenv("METRICS_PORT")
