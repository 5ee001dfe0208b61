from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Mapping

from secretref.domain.evaluation import SegmentRuleEvaluator
from secretref.domain.models import Segment
from secretref.domain.ports.catalog import ConfigurationCatalogProtocol
from secretref.domain.ports.secrets import SecretStoreClientProtocol
from secretref.domain.property import Property
from secretref.domain.secret_resolver import SecretResolver
from secretref.errors import CatalogError


class InMemoryConfigurationCatalog(ConfigurationCatalogProtocol):
    """
    Назначение/ответственность:
        Каталог свойств и сегментов в памяти + соответствие property_id -> клиент секретов.
    Инварианты/гарантии:
        - property_id уникален.
        - У свойства не более одного клиента секретов (повторная регистрация заменяет).
        - Всем свойствам привязан общий SegmentRuleEvaluator над сегментами каталога.
    """

    def __init__(
        self,
        properties: Iterable[Property] = (),
        segments: Iterable[Segment] = (),
        logger: logging.Logger | None = None,
    ):
        self._logger = logger or logging.getLogger(__name__)
        self._segments: dict[str, Segment] = {}
        for segment in segments:
            if segment.segment_id in self._segments:
                raise CatalogError(f"Duplicate segment id: {segment.segment_id}", details={"segment_id": segment.segment_id})
            self._segments[segment.segment_id] = segment

        self._evaluator = SegmentRuleEvaluator(self._segments, logger=self._logger)
        self._properties: dict[str, Property] = {}
        for prop in properties:
            if prop.property_id in self._properties:
                raise CatalogError(f"Duplicate property id: {prop.property_id}", details={"property_id": prop.property_id})
            prop.bind_evaluator(self._evaluator)
            self._properties[prop.property_id] = prop

        self._secret_clients: dict[str, SecretStoreClientProtocol] = {}

    def get_property(self, property_id: str) -> Property:
        prop = self._properties.get(property_id)
        if prop is None:
            raise CatalogError(
                f"Property not found: {property_id}",
                code="PROPERTY_NOT_FOUND",
                details={"property_id": property_id},
            )
        return prop

    def list_properties(self) -> list[Property]:
        return list(self._properties.values())

    def get_segment(self, segment_id: str) -> Segment | None:
        return self._segments.get(segment_id)

    def get_secret_clients(self) -> Mapping[str, SecretStoreClientProtocol]:
        return MappingProxyType(self._secret_clients)

    def register_secret_client(self, property_id: str, client: SecretStoreClientProtocol) -> None:
        """
        Назначение:
            Привязывает клиента хранилища секретов к свойству (1:1).
        """
        self.get_property(property_id)
        self._secret_clients[property_id] = client

    def secret_property(
        self,
        property_id: str,
        client: SecretStoreClientProtocol | None = None,
        logger: logging.Logger | None = None,
    ) -> SecretResolver:
        """
        Назначение:
            Точка входа для секретных свойств: проверяет наличие свойства,
            при необходимости регистрирует клиента и возвращает SecretResolver,
            связанный с этим каталогом.
        """
        self.get_property(property_id)
        if client is not None:
            self.register_secret_client(property_id, client)
        return SecretResolver(property_id, self, logger=logger or self._logger)


__all__ = ["InMemoryConfigurationCatalog"]
