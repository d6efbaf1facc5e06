"""Команды пользователя: каждый жест превращается в значение одного из этих типов."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PlacePixel:
    screen_x: float
    screen_y: float


@dataclass(frozen=True)
class SelectColor:
    index: int


@dataclass(frozen=True)
class SelectMood:
    index: int


@dataclass(frozen=True)
class ZoomIn:
    pass


@dataclass(frozen=True)
class ZoomOut:
    pass


@dataclass(frozen=True)
class ResetView:
    pass


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


@dataclass(frozen=True)
class SendChat:
    text: str


@dataclass(frozen=True)
class Login:
    email: str
    password: str


@dataclass(frozen=True)
class Register:
    email: str
    username: str
    password: str


@dataclass(frozen=True)
class PlayAsGuest:
    pass


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class ExportPng:
    path: Optional[Path] = None


@dataclass(frozen=True)
class ExportVideo:
    path: Optional[Path] = None


@dataclass(frozen=True)
class ViewHistory:
    pass


@dataclass(frozen=True)
class Quit:
    pass
