from __future__ import annotations

from enum import Enum


class DiagnosticCode(str, Enum):
    """
    Назначение:
        Классы диагностик, на которых останавливается разрешение секретного свойства.
    Инварианты/гарантии:
        - Каждый код соответствует ровно одному шлюзу проверки.
        - Ни один код не означает "повторить" или "взять значение по умолчанию".
    """

    INVALID_ENTITY_ID = "INVALID_ENTITY_ID"
    INVALID_ENTITY_ATTRIBUTES = "INVALID_ENTITY_ATTRIBUTES"
    MISSING_SECRET_TYPE = "MISSING_SECRET_TYPE"
    EVALUATION_FAILED = "EVALUATION_FAILED"
    MISSING_SECRET_ID = "MISSING_SECRET_ID"
    MISSING_SECRET_CLIENT = "MISSING_SECRET_CLIENT"


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок клиентов хранилищ секретов.
    """

    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    SECRET_NOT_FOUND = "SECRET_NOT_FOUND"

    @classmethod
    def from_status(cls, status_code: int | None) -> "ErrorCode":
        """
        Назначение:
            Подбор общего кода по HTTP-статусу.
        """
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 404:
            return cls.SECRET_NOT_FOUND
        return cls.HTTP_ERROR
