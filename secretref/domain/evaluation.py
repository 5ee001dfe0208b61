from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping

from secretref.domain.error_codes import DiagnosticCode
from secretref.domain.models import (
    DEFAULT_VALUE_MARKER,
    EvaluatedValue,
    EvaluationDetails,
    Rule,
    Segment,
    ValueType,
)

if TYPE_CHECKING:
    from secretref.domain.property import Property

STRING_OPERATORS = ("contains", "startsWith", "endsWith")
NUMERIC_OPERATORS = ("greaterThan", "lesserThan", "greaterThanEquals", "lesserThanEquals")
SUPPORTED_OPERATORS = ("is",) + STRING_OPERATORS + NUMERIC_OPERATORS


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _matches_value(operator: str, key: Any, rule_value: Any) -> bool:
    if operator == "is":
        if isinstance(key, bool):
            return str(rule_value).lower() == str(key).lower()
        if isinstance(key, (int, float)):
            number = _to_number(rule_value)
            return number is not None and float(key) == number
        return str(key) == str(rule_value)

    if operator in STRING_OPERATORS:
        if not isinstance(key, str) or not isinstance(rule_value, str):
            return False
        if operator == "contains":
            return rule_value in key
        if operator == "startsWith":
            return key.startswith(rule_value)
        return key.endswith(rule_value)

    if operator in NUMERIC_OPERATORS:
        left = _to_number(key)
        right = _to_number(rule_value)
        if left is None or right is None:
            return False
        if operator == "greaterThan":
            return left > right
        if operator == "lesserThan":
            return left < right
        if operator == "greaterThanEquals":
            return left >= right
        return left <= right

    return False


def evaluate_rule(rule: Rule, key: Any) -> bool:
    """
    Назначение:
        Проверяет одно правило сегмента для значения атрибута.
    Алгоритм:
        Правило выполнено, если выполнено сравнение хотя бы с одним из values.
    """
    return any(_matches_value(rule.operator, key, rule_value) for rule_value in rule.values)


def segment_matches(segment: Segment, entity_attributes: Mapping[str, Any]) -> bool:
    """
    Назначение:
        Входит ли сущность в сегмент.
    Алгоритм:
        - Каждый атрибут, на который ссылается правило, должен присутствовать.
        - Все правила сегмента должны быть выполнены.
    """
    for rule in segment.rules:
        if rule.attribute_name not in entity_attributes:
            return False
        if not evaluate_rule(rule, entity_attributes[rule.attribute_name]):
            return False
    return True


class SegmentRuleEvaluator:
    """
    Назначение/ответственность:
        Движок вычисления значения свойства для сущности по правилам таргетинга.
    Алгоритм:
        - Правила сегментов перебираются по возрастанию order.
        - Первое правило, в списке сегментов которого есть подходящий сегмент, побеждает.
        - "$default" в победившем правиле означает объявленное значение свойства.
        - Если ничего не подошло — объявленное значение (DEFAULT_VALUE).
    Ограничения:
        Состояния между вызовами не хранит; каталог сегментов только читается.
    """

    def __init__(self, segments: Mapping[str, Segment], logger: logging.Logger | None = None):
        self._segments = segments
        self._logger = logger or logging.getLogger(__name__)

    def evaluate(
        self,
        prop: "Property",
        entity_id: str,
        entity_attributes: Mapping[str, Any] | None = None,
    ) -> EvaluatedValue | None:
        """
        Контракт (вход/выход):
            - Вход: свойство, id сущности, атрибуты сущности (mapping или None).
            - Выход: EvaluatedValue либо None (сигнал отсутствия значения).
        """
        if not entity_id:
            self._diagnostic(DiagnosticCode.INVALID_ENTITY_ID, f"Property evaluation: entity id is missing for {prop.get_name()}")
            return None
        if entity_attributes is None:
            entity_attributes = {}
        if not isinstance(entity_attributes, Mapping):
            self._diagnostic(
                DiagnosticCode.INVALID_ENTITY_ATTRIBUTES,
                f"Property evaluation: entity attributes must be a mapping for {prop.get_name()}",
            )
            return None

        if not prop.segment_rules:
            return EvaluatedValue(
                value=prop.value,
                details=EvaluationDetails(
                    value_type=ValueType.DEFAULT_VALUE,
                    reason="Property has no segment rules",
                ),
            )

        for segment_rule in sorted(prop.segment_rules, key=lambda r: r.order):
            for segment_id in segment_rule.segments:
                segment = self._segments.get(segment_id)
                if segment is None:
                    self._logger.warning(
                        f"Property evaluation: segment {segment_id} referenced by {prop.get_name()} is not defined",
                        extra={"component": "evaluation"},
                    )
                    continue
                if not segment_matches(segment, entity_attributes):
                    continue
                if segment_rule.value == DEFAULT_VALUE_MARKER:
                    value = prop.value
                    reason = f"Entity belongs to segment {segment.name}, property default value applies"
                else:
                    value = segment_rule.value
                    reason = f"Entity belongs to segment {segment.name}"
                return EvaluatedValue(
                    value=value,
                    details=EvaluationDetails(
                        value_type=ValueType.SEGMENT_VALUE,
                        reason=reason,
                        segment_name=segment.name,
                        segment_rule_order=segment_rule.order,
                    ),
                )

        return EvaluatedValue(
            value=prop.value,
            details=EvaluationDetails(
                value_type=ValueType.DEFAULT_VALUE,
                reason="Entity does not belong to any targeted segment",
            ),
        )

    def _diagnostic(self, code: DiagnosticCode, message: str) -> None:
        self._logger.error(message, extra={"component": "evaluation", "code": code.value})


__all__ = [
    "SUPPORTED_OPERATORS",
    "evaluate_rule",
    "segment_matches",
    "SegmentRuleEvaluator",
]
