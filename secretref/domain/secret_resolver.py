from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Awaitable, Mapping

from secretref.domain.error_codes import DiagnosticCode
from secretref.domain.models import SecretFetchRequest, SecretFetchResult

if TYPE_CHECKING:
    from secretref.domain.ports.catalog import ConfigurationCatalogProtocol


class SecretResolver:
    """
    Назначение/ответственность:
        Разрешает свойство-ссылку на секрет для одной сущности и передаёт получение
        секрета клиенту хранилища, привязанному к свойству.
    Алгоритм (последовательные проверки, каждая либо пропускает дальше, либо
    завершает вызов с None и диагностикой):
        1) entity_id задан                          -> INVALID_ENTITY_ID
        2) свойство берётся из каталога
        3) объявленное значение содержит secret_type -> MISSING_SECRET_TYPE
        4) вычисление для сущности дало значение     -> EVALUATION_FAILED
        5) вычисленное value содержит id             -> MISSING_SECRET_ID
        6) клиент хранилища привязан к свойству      -> MISSING_SECRET_CLIENT
        7) клиенту уходит SecretFetchRequest(secret_type, id)
        8) awaitable клиента возвращается как есть
    Ограничения:
        - Привязан к одному property_id навсегда.
        - Не хранит состояния между вызовами, клиента не кэширует.
        - Не ждёт и не перехватывает результат клиента: ошибки получения секрета
          проявляются у вызывающего при await.
        - Повторов нет: вызывающий сам решает, вызывать ли resolve снова.
    """

    def __init__(
        self,
        property_id: str,
        catalog: "ConfigurationCatalogProtocol",
        logger: logging.Logger | None = None,
    ):
        self._property_id = property_id
        self._catalog = catalog
        self._logger = logger or logging.getLogger(__name__)

    @property
    def property_id(self) -> str:
        return self._property_id

    def resolve(
        self,
        entity_id: str,
        entity_attributes: Mapping[str, Any] | None = None,
    ) -> Awaitable[SecretFetchResult] | None:
        """
        Контракт (вход/выход):
            - Вход: id сущности (непустой) и атрибуты сущности (передаются в вычисление как есть).
            - Выход: awaitable клиента хранилища (тот же объект) либо None.
        Ошибки/исключения:
            Собственных исключений не бросает; отказ клиента виден только при await.
        """
        if not entity_id:
            self._diagnostic(
                DiagnosticCode.INVALID_ENTITY_ID,
                "SecretProperty evaluation: Invalid entity id for resolve",
            )
            return None

        prop = self._catalog.get_property(self._property_id)

        declaration = prop.secret_declaration()
        if declaration is None:
            self._diagnostic(
                DiagnosticCode.MISSING_SECRET_TYPE,
                f"SecretProperty evaluation: secret_type is missing from the Property value of : {prop.get_name()}",
            )
            return None

        evaluated = prop.evaluate(entity_id, entity_attributes)
        if evaluated is None:
            self._diagnostic(
                DiagnosticCode.EVALUATION_FAILED,
                "SecretProperty evaluation: Property evaluated value is invalid.",
            )
            return None

        reference = evaluated.secret_reference()
        if reference is None:
            self._diagnostic(
                DiagnosticCode.MISSING_SECRET_ID,
                f"SecretProperty evaluation: Secret Id is missing from the Property : {prop.get_name()}",
            )
            return None

        client = self._catalog.get_secret_clients().get(self._property_id)
        if client is None:
            self._diagnostic(
                DiagnosticCode.MISSING_SECRET_CLIENT,
                f"SecretProperty evaluation: no secret client is registered for the Property : {prop.get_name()}",
            )
            return None

        return client.fetch_secret(SecretFetchRequest(secret_type=declaration.secret_type, id=reference.id))

    def _diagnostic(self, code: DiagnosticCode, message: str) -> None:
        self._logger.error(
            message,
            extra={"component": "secret_property", "code": code.value, "propertyId": self._property_id},
        )


__all__ = ["SecretResolver"]
