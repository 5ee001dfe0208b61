from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

from secretref.domain.models import (
    EvaluatedValue,
    EvaluationDetails,
    SecretDeclaration,
    SegmentRule,
    ValueType,
)

if TYPE_CHECKING:
    from secretref.domain.evaluation import SegmentRuleEvaluator


@dataclass
class Property:
    """
    Назначение/ответственность:
        Свойство конфигурации: объявленное значение + правила таргетинга по сегментам.
    Взаимодействия:
        Вычисление для сущности делегируется SegmentRuleEvaluator, который каталог
        привязывает при загрузке (bind_evaluator).
    """

    property_id: str
    name: str
    type: str = "STRING"
    value: Any = None
    format: str | None = None
    segment_rules: tuple[SegmentRule, ...] = ()
    tags: str | None = None
    _evaluator: "SegmentRuleEvaluator | None" = field(default=None, repr=False, compare=False)

    def get_name(self) -> str:
        return self.name

    def bind_evaluator(self, evaluator: "SegmentRuleEvaluator") -> None:
        self._evaluator = evaluator

    def secret_declaration(self) -> SecretDeclaration | None:
        """Разбор объявленного значения: None, если свойство не ссылается на секрет."""
        return SecretDeclaration.from_value(self.value)

    def evaluate(self, entity_id: str, entity_attributes: Mapping[str, Any] | None = None) -> EvaluatedValue | None:
        """
        Контракт (вход/выход):
            - Вход: id сущности и её атрибуты.
            - Выход: EvaluatedValue или None, если вычисление невозможно.
        """
        if self._evaluator is not None:
            return self._evaluator.evaluate(self, entity_id, entity_attributes)
        if not entity_id:
            return None
        return EvaluatedValue(
            value=self.value,
            details=EvaluationDetails(
                value_type=ValueType.DEFAULT_VALUE,
                reason="Property has no evaluator bound",
            ),
        )


__all__ = ["Property"]
