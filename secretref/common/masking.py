from __future__ import annotations

from typing import Any

MASK = "***"

# Поля тела секрета, которые описывают секрет, а не содержат его.
METADATA_KEYS = ("id", "secret_type", "secretType", "name", "version", "created_at", "updated_at")


def maskSecret(value: str | None) -> str | None:
    """Маска для одиночного значения (API-ключ в заголовке запуска и т.п.); None остаётся None."""
    return None if value is None else MASK


def maskSecretBody(body: Any, metadata_keys: tuple[str, ...] = METADATA_KEYS) -> Any:
    """
    Назначение:
        Готовит тело ответа хранилища секретов к выводу в stdout/лог.

    Алгоритм:
        - В словаре значения metadata_keys остаются как есть (только скаляры).
        - Любое другое скалярное значение заменяется маской, вложенные dict/list
          обрабатываются рекурсивно.
        - Тело-строка (не JSON) маскируется целиком; None остаётся None.

    Инварианты:
        Значение секрета не попадает в результат ни под каким ключом,
        которого нет в metadata_keys.
    """
    if body is None:
        return None
    if isinstance(body, dict):
        masked: dict[str, Any] = {}
        for key, value in body.items():
            if key in metadata_keys and not isinstance(value, (dict, list)):
                masked[key] = value
            else:
                masked[key] = maskSecretBody(value, metadata_keys)
        return masked
    if isinstance(body, list):
        return [maskSecretBody(item, metadata_keys) for item in body]
    return MASK


def errorBodySnippet(text: str | None, limit: int = 200) -> str | None:
    """
    Назначение:
        Короткий однострочный фрагмент тела ошибочного HTTP-ответа для SecretFetchError.
    Алгоритм:
        Пробельные символы схлопываются в один пробел; длиннее limit — обрезка с "...".
        Пустое тело -> None.
    """
    if not text:
        return None
    flat = " ".join(text.split())
    if not flat:
        return None
    if len(flat) <= limit:
        return flat
    return flat[: max(limit - 3, 0)] + "..."
