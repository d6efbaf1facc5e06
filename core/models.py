"""
Объекты данных, которыми обмениваются клиент и сервер холста.

Сервер в разных версиях отдает поля под разными именами (например,
`color` и `colorIndex`), поэтому разбор терпим к обоим вариантам.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Возвращает значение первого найденного ключа."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass(frozen=True)
class Region:
    """Прямоугольник сетки, запрашиваемый у сервера."""
    x: int
    y: int
    width: int
    height: int

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height

    def as_params(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Pixel:
    x: int
    y: int
    color_index: int
    mood: Optional[int] = None
    timestamp: Optional[int] = None
    user_id: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Pixel":
        return cls(
            x=int(data["x"]),
            y=int(data["y"]),
            color_index=int(_pick(data, "colorIndex", "color", default=0)),
            mood=_pick(data, "moodIndex", "mood"),
            timestamp=data.get("timestamp"),
            user_id=data.get("userId"),
        )


@dataclass(frozen=True)
class EpisodeInfo:
    number: int
    seconds_remaining: int
    is_active: bool = True
    is_frozen: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpisodeInfo":
        return cls(
            number=int(data["episodeNumber"]),
            seconds_remaining=max(0, int(_pick(data, "secondsRemaining", "timeRemaining", default=0))),
            is_active=bool(data.get("isActive", True)),
            is_frozen=bool(data.get("isFrozen", False)),
        )


@dataclass(frozen=True)
class SeasonInfo:
    name: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeasonInfo":
        return cls(name=str(data["season"]))


@dataclass(frozen=True)
class Quest:
    description: str
    progress: int
    target: int
    completed: bool

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quest":
        return cls(
            description=str(data.get("description", "")),
            progress=int(data.get("progress", 0)),
            target=int(data.get("target", 0)),
            completed=bool(data.get("completed", False)),
        )


@dataclass(frozen=True)
class ChatMessage:
    author: str
    text: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            author=str(_pick(data, "username", "author", default="")),
            text=str(_pick(data, "message", "text", default="")),
        )


@dataclass(frozen=True)
class HistoryEntry:
    episode_number: int
    timestamp: int  # unix seconds, конец эпизода

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        return cls(episode_number=int(data["episodeNumber"]), timestamp=int(data.get("timestamp", 0)))


@dataclass(frozen=True)
class AuthResult:
    session_token: str
    user_id: Optional[int]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthResult":
        token = _pick(data, "sessionToken", "sessionId")
        if not token:
            raise ValueError("auth response without session token")
        return cls(session_token=str(token), user_id=data.get("userId"))
