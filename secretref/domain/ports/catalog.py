from __future__ import annotations

from typing import Mapping, Protocol

from secretref.domain.ports.secrets import SecretStoreClientProtocol
from secretref.domain.property import Property


class ConfigurationCatalogProtocol(Protocol):
    """
    Назначение:
        Порт каталога конфигурации: свойства по id и привязанные к ним клиенты секретов.
    Ограничения:
        Для SecretResolver каталог доступен только на чтение.
    """

    def get_property(self, property_id: str) -> Property:
        ...

    def get_secret_clients(self) -> Mapping[str, SecretStoreClientProtocol]:
        ...


__all__ = ["ConfigurationCatalogProtocol"]
