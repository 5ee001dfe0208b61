from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from secretref.domain.evaluation import SUPPORTED_OPERATORS
from secretref.domain.models import Rule, Segment, SegmentRule
from secretref.domain.property import Property
from secretref.errors import CatalogError
from secretref.infra.catalog.in_memory_catalog import InMemoryConfigurationCatalog


def _require(item: dict, key: str, where: str) -> Any:
    if key not in item or item[key] in (None, ""):
        raise CatalogError(f"{where}: '{key}' is required", details={"where": where, "key": key})
    return item[key]


def _as_list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise CatalogError(f"{where}: expected a list", details={"where": where})
    return value


def _parse_rule(raw: Any, where: str) -> Rule:
    if not isinstance(raw, dict):
        raise CatalogError(f"{where}: rule must be a mapping", details={"where": where})
    operator = _require(raw, "operator", where)
    if operator not in SUPPORTED_OPERATORS:
        raise CatalogError(f"{where}: unsupported operator '{operator}'", details={"where": where, "operator": operator})
    return Rule(
        attribute_name=str(_require(raw, "attribute_name", where)),
        operator=operator,
        values=tuple(_as_list(raw.get("values"), f"{where}.values")),
    )


def _parse_segment(raw: Any, index: int) -> Segment:
    where = f"segments[{index}]"
    if not isinstance(raw, dict):
        raise CatalogError(f"{where}: segment must be a mapping", details={"where": where})
    segment_id = str(_require(raw, "segment_id", where))
    rules = tuple(
        _parse_rule(rule, f"{where}.rules[{i}]")
        for i, rule in enumerate(_as_list(raw.get("rules"), f"{where}.rules"))
    )
    # сегмент без правил совпал бы с любой сущностью
    if not rules:
        raise CatalogError(f"{where}: segment needs at least one rule", details={"where": where, "key": "rules"})
    return Segment(segment_id=segment_id, name=str(raw.get("name") or segment_id), rules=rules)


def _parse_segment_rule(raw: Any, where: str) -> SegmentRule:
    """
    Формат правила:
        {"rules": [{"segments": [...]}, ...], "value": ..., "order": N}
    Списки segments из всех rules объединяются.
    """
    if not isinstance(raw, dict):
        raise CatalogError(f"{where}: segment rule must be a mapping", details={"where": where})
    if "value" not in raw:
        raise CatalogError(f"{where}: 'value' is required", details={"where": where, "key": "value"})
    segments: list[str] = []
    for i, group in enumerate(_as_list(raw.get("rules"), f"{where}.rules")):
        if not isinstance(group, dict):
            raise CatalogError(f"{where}.rules[{i}]: must be a mapping", details={"where": where})
        segments.extend(str(s) for s in _as_list(group.get("segments"), f"{where}.rules[{i}].segments"))
    order = raw.get("order", 0)
    try:
        order = int(order)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where}: 'order' must be an integer", details={"where": where}) from exc
    return SegmentRule(segments=tuple(segments), value=raw["value"], order=order)


def _parse_property(raw: Any, index: int) -> Property:
    where = f"properties[{index}]"
    if not isinstance(raw, dict):
        raise CatalogError(f"{where}: property must be a mapping", details={"where": where})
    property_id = str(_require(raw, "property_id", where))
    segment_rules = tuple(
        _parse_segment_rule(rule, f"{where}.segment_rules[{i}]")
        for i, rule in enumerate(_as_list(raw.get("segment_rules"), f"{where}.segment_rules"))
    )
    return Property(
        property_id=property_id,
        name=str(raw.get("name") or property_id),
        type=str(raw.get("type") or "STRING"),
        value=raw.get("value"),
        format=raw.get("format"),
        segment_rules=segment_rules,
        tags=raw.get("tags"),
    )


def _read_catalog_data(path: Path) -> dict:
    if not path.exists() or not path.is_file():
        raise CatalogError(f"Catalog file not found: {path}", code="CATALOG_NOT_FOUND", details={"path": str(path)})
    with path.open("r", encoding="utf-8") as f:
        try:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f) or {}
        except (ValueError, yaml.YAMLError) as exc:
            raise CatalogError(f"Catalog file is not valid: {path}", details={"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise CatalogError(f"Catalog root must be a mapping: {path}", details={"path": str(path)})
    return data


def build_catalog(data: dict, logger: logging.Logger | None = None) -> InMemoryConfigurationCatalog:
    """
    Назначение:
        Собирает каталог из словаря вида {"properties": [...], "segments": [...]}.
        logger получает диагностику вычисления свойств (неизвестные сегменты, атрибуты).
    """
    segments = [_parse_segment(raw, i) for i, raw in enumerate(_as_list(data.get("segments"), "segments"))]
    properties = [_parse_property(raw, i) for i, raw in enumerate(_as_list(data.get("properties"), "properties"))]
    return InMemoryConfigurationCatalog(properties=properties, segments=segments, logger=logger)


def load_catalog_file(path: str, logger: logging.Logger | None = None) -> InMemoryConfigurationCatalog:
    """
    Назначение:
        Загружает каталог из YAML (.yml/.yaml) или JSON (.json) файла.

    Ошибки:
        CatalogError(code=CATALOG_NOT_FOUND) — файла нет;
        CatalogError(code=INVALID_CATALOG) — содержимое не разбирается.
    """
    return build_catalog(_read_catalog_data(Path(path)), logger=logger)
