"""Разбор строк консольного клиента в команды."""

from pathlib import Path

from core import commands as cmd
from core.exceptions import ValidationError

HELP_TEXT = """Команды:
  guest | login EMAIL PASSWORD | register EMAIL USERNAME PASSWORD | logout
  place X Y        - клик по экрану в точке (X, Y)
  color N | mood N - выбор цвета (0-15) и настроения (0-4)
  zoom in | zoom out | reset | pan DX DY
  chat ТЕКСТ
  export png [ПУТЬ] | export video [ПУТЬ] | history
  help | quit"""


def _number(value: str, kind=float):
    try:
        return kind(value)
    except ValueError:
        raise ValidationError(f"Not a number: {value}")


def parse_command(line: str):
    """
    Превращает строку ввода в команду.

    Returns:
        Команда из core.commands или None для пустой строки / help
    Raises:
        ValidationError: строку не удалось разобрать
    """
    line = line.strip()
    if not line:
        return None
    name, _, rest = line.partition(" ")
    name = name.lower()
    args = rest.split()

    if name in ("help", "?"):
        return None
    if name in ("quit", "exit", "q"):
        return cmd.Quit()
    if name == "guest":
        return cmd.PlayAsGuest()
    if name == "logout":
        return cmd.Logout()
    if name == "login":
        if len(args) != 2:
            raise ValidationError("Usage: login EMAIL PASSWORD")
        return cmd.Login(args[0], args[1])
    if name == "register":
        if len(args) != 3:
            raise ValidationError("Usage: register EMAIL USERNAME PASSWORD")
        return cmd.Register(args[0], args[1], args[2])
    if name in ("place", "click"):
        if len(args) != 2:
            raise ValidationError("Usage: place X Y")
        return cmd.PlacePixel(_number(args[0]), _number(args[1]))
    if name == "color":
        if len(args) != 1:
            raise ValidationError("Usage: color N")
        return cmd.SelectColor(_number(args[0], int))
    if name == "mood":
        if len(args) != 1:
            raise ValidationError("Usage: mood N")
        return cmd.SelectMood(_number(args[0], int))
    if name == "zoom":
        if args == ["in"]:
            return cmd.ZoomIn()
        if args == ["out"]:
            return cmd.ZoomOut()
        raise ValidationError("Usage: zoom in | zoom out")
    if name == "+":
        return cmd.ZoomIn()
    if name == "-":
        return cmd.ZoomOut()
    if name == "reset":
        return cmd.ResetView()
    if name == "pan":
        if len(args) != 2:
            raise ValidationError("Usage: pan DX DY")
        return cmd.Pan(_number(args[0]), _number(args[1]))
    if name == "chat":
        return cmd.SendChat(rest)
    if name == "export":
        if not args or args[0] not in ("png", "video"):
            raise ValidationError("Usage: export png|video [PATH]")
        path = Path(args[1]) if len(args) > 1 else None
        return cmd.ExportPng(path) if args[0] == "png" else cmd.ExportVideo(path)
    if name == "history":
        return cmd.ViewHistory()
    raise ValidationError(f"Unknown command: {name}. Type 'help'")
