"""
Ошибки клиента холста.

Ни одна из них не фатальна для процесса: чтение повторяется на следующем
цикле синхронизации, запись пользователь повторяет вручную.
"""

from typing import Optional


class CanvasClientError(Exception):
    """Базовая ошибка клиента."""


class TransportError(CanvasClientError):
    """Сеть недоступна, таймаут или ответ не удалось разобрать."""


class RejectionError(CanvasClientError):
    """Сервер ответил отказом (success: false или HTTP-ошибка с полем error)."""

    def __init__(self, reason: Optional[str] = None, status: Optional[int] = None):
        self.reason = reason or "Request rejected"
        self.status = status
        super().__init__(self.reason)


class ValidationError(CanvasClientError):
    """Локальная проверка не пройдена, запрос не отправлялся."""
