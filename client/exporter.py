"""
Сохранение экспортов холста на диск.
"""

import io
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from core.exceptions import TransportError

logger = logging.getLogger(__name__)


def save_png(data: bytes, path: Path, scale: int = 1) -> Path:
    """
    Сохраняет PNG, полученный с сервера. Сервер отдает картинку 1 клетка = 1 пиксель,
    поэтому при scale > 1 она увеличивается без сглаживания.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise TransportError(f"export_png: not a valid image ({e})") from e
    if scale > 1:
        img = img.resize((img.width * scale, img.height * scale), Image.Resampling.NEAREST)
    img.save(path, format="PNG")
    logger.info(f"PNG сохранен: {path}")
    return path


def save_video(data: bytes, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    logger.info(f"Видео сохранено: {path} ({len(data)} байт)")
    return path
