from __future__ import annotations

from typing import Awaitable, Protocol

from secretref.domain.models import SecretFetchRequest, SecretFetchResult


class SecretStoreClientProtocol(Protocol):
    """
    Назначение:
        Порт клиента внешнего хранилища секретов (один клиент на свойство).
    Взаимодействия:
        Вызывается SecretResolver после прохождения всех проверок.
    Ограничения:
        Не знает о свойствах и сущностях — только об адресе секрета (тип + id).
    """

    def fetch_secret(self, request: SecretFetchRequest) -> Awaitable[SecretFetchResult]:
        """
        Контракт (вход/выход):
            - Вход: SecretFetchRequest(secret_type, id).
            - Выход: awaitable, который завершается SecretFetchResult.
        Ошибки/исключения:
            Ошибки получения проявляются при await (форма ошибки определяется реализацией).
        """
        ...


__all__ = ["SecretStoreClientProtocol"]
