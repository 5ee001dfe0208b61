from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class AppError(Exception):
    """
    Унифицированная ошибка приложения.
    """

    category: str
    code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
        }


class CatalogError(AppError):
    def __init__(self, message: str, code: str = "INVALID_CATALOG", details: dict | None = None):
        """
        Назначение:
            Ошибка каталога конфигурации (неизвестное свойство, битый файл каталога).
        """
        super().__init__(
            category="catalog",
            code=code,
            message=message,
            retryable=False,
            details=details or {},
        )


class SecretFetchError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_snippet: str | None = None,
        retryable: bool = False,
        details: dict | None = None,
        code: str | None = None,
    ):
        """
        Назначение:
            Ошибка получения секрета из хранилища (HTTP/сеть/отсутствие записи).
        Контракт:
            - code: строковый код (HTTP_*, NETWORK_ERROR, SECRET_NOT_FOUND и т.п.).
            - status_code/body_snippet используются для диагностики.
        """
        super().__init__(
            category="secrets",
            code=code or (f"HTTP_{status_code}" if status_code else "SECRET_FETCH_ERROR"),
            message=message,
            retryable=retryable,
            details=details or {},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


__all__ = ["AppError", "CatalogError", "SecretFetchError"]
