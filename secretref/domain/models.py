from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

DEFAULT_VALUE_MARKER = "$default"


class ValueType(str, Enum):
    DEFAULT_VALUE = "DEFAULT_VALUE"
    SEGMENT_VALUE = "SEGMENT_VALUE"


@dataclass(frozen=True)
class SecretDeclaration:
    """
    Назначение:
        Признак того, что свойство хранит ссылку на секрет, а не само значение.
    Инварианты/гарантии:
        - Создаётся только из объявленного значения, содержащего ключ secret_type.
    """

    secret_type: Any

    @classmethod
    def from_value(cls, value: Any) -> "SecretDeclaration | None":
        # Значим сам факт наличия ключа, а не его содержимое.
        if not isinstance(value, Mapping):
            return None
        if "secret_type" not in value:
            return None
        return cls(secret_type=value["secret_type"])


@dataclass(frozen=True)
class SecretReference:
    """Идентификатор конкретного экземпляра секрета для сущности."""

    id: Any


@dataclass(frozen=True)
class EvaluationDetails:
    value_type: ValueType
    reason: str
    segment_name: str | None = None
    segment_rule_order: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "value_type": self.value_type.value,
            "reason": self.reason,
            "segment_name": self.segment_name,
            "segment_rule_order": self.segment_rule_order,
        }


@dataclass(frozen=True)
class EvaluatedValue:
    """
    Назначение:
        Значение свойства, вычисленное для одной сущности по правилам таргетинга.
    Взаимодействия:
        Возвращается Property.evaluate(); SecretResolver читает из него ссылку на секрет.
    """

    value: Any
    details: EvaluationDetails

    def secret_reference(self) -> SecretReference | None:
        """
        Контракт (вход/выход):
            - Выход: SecretReference, если value — mapping с ключом id; иначе None.
        """
        if not isinstance(self.value, Mapping):
            return None
        if "id" not in self.value:
            return None
        return SecretReference(id=self.value["id"])


@dataclass(frozen=True)
class SecretFetchRequest:
    """Минимальный адрес секрета, передаваемый клиенту хранилища."""

    secret_type: Any
    id: Any

    def to_dict(self) -> dict[str, Any]:
        return {"secretType": self.secret_type, "id": self.id}


@dataclass(frozen=True)
class SecretFetchResult:
    """
    Назначение:
        Ответ хранилища секретов: тело, заголовки, статус.
    Ограничения:
        Формируется только клиентами хранилищ; резолвер его не читает и не меняет.
    """

    body: Any
    headers: dict[str, str] = field(default_factory=dict)
    status_code: int = 200
    status_text: str = "OK"


@dataclass(frozen=True)
class Rule:
    attribute_name: str
    operator: str
    values: tuple[Any, ...]


@dataclass(frozen=True)
class Segment:
    """
    Назначение:
        Именованная группа сущностей, задаваемая набором правил по атрибутам.
    Инварианты/гарантии:
        - Сущность входит в сегмент, только если выполнены ВСЕ правила.
    """

    segment_id: str
    name: str
    rules: tuple[Rule, ...] = ()


@dataclass(frozen=True)
class SegmentRule:
    """
    Назначение:
        Правило таргетинга свойства: для сущностей из segments выдаётся value.
    Пояснения:
        value == "$default" означает объявленное значение свойства.
    """

    segments: tuple[str, ...]
    value: Any
    order: int = 0


__all__ = [
    "DEFAULT_VALUE_MARKER",
    "ValueType",
    "SecretDeclaration",
    "SecretReference",
    "EvaluationDetails",
    "EvaluatedValue",
    "SecretFetchRequest",
    "SecretFetchResult",
    "Rule",
    "Segment",
    "SegmentRule",
]
