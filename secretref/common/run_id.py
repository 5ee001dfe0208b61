from __future__ import annotations

import re
import uuid

_RUN_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def generate_run_id() -> str:
    """Новый run_id команды: UUID4 в виде строки."""
    return str(uuid.uuid4())


def validate_run_id(run_id: str) -> str:
    """
    Назначение:
        Проверяет run_id, переданный через --run-id.
    Контракт:
        run_id входит в имя лог-файла (<command>_<run_id>.log), поэтому допускаются
        только буквы, цифры, '.', '_' и '-', первый символ не разделитель, длина до 128.
        Некорректное значение -> ValueError.
    """
    if not _RUN_ID_PATTERN.match(run_id):
        raise ValueError(f"Invalid run id: {run_id!r}")
    return run_id
