from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from secretref.domain.error_codes import ErrorCode
from secretref.domain.models import SecretFetchRequest, SecretFetchResult
from secretref.domain.ports.secrets import SecretStoreClientProtocol
from secretref.errors import SecretFetchError
from secretref.common.time import getNowIso


_FIELDNAMES = ["secret_type", "id", "value", "updated_at"]


class FileVaultSecretStore:
    """
    Назначение:
        Запись секретов в CSV-файл (dev vault).
    """

    def __init__(self, path: str):
        self._path = Path(path)

    def put(self, *, secret_type: str, secret_id: str, value: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not self._path.exists()
        with self._path.open("a", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=_FIELDNAMES)
            if needs_header:
                writer.writeheader()
            writer.writerow(
                {
                    "secret_type": secret_type,
                    "id": secret_id,
                    "value": value,
                    "updated_at": getNowIso(),
                }
            )


class FileVaultSecretStoreClient(SecretStoreClientProtocol):
    """
    Назначение:
        Чтение секретов из CSV-файла (dev vault).
    Алгоритм:
        Последняя запись с совпадающими (secret_type, id) побеждает.
    """

    def __init__(self, path: str):
        self._path = Path(path)

    async def fetch_secret(self, request: SecretFetchRequest) -> SecretFetchResult:
        best = None
        if self._path.exists():
            for row in _read_rows(self._path):
                if row.get("secret_type") != str(request.secret_type):
                    continue
                if row.get("id") != str(request.id):
                    continue
                best = row
        if best is None:
            raise SecretFetchError(
                f"Secret not found in vault file: {request.secret_type}/{request.id}",
                status_code=404,
                code=ErrorCode.SECRET_NOT_FOUND.value,
                details=request.to_dict(),
            )
        return SecretFetchResult(
            body={
                "id": best.get("id"),
                "secret_type": best.get("secret_type"),
                "payload": best.get("value"),
                "updated_at": best.get("updated_at"),
            },
            headers={"content-type": "application/json"},
            status_code=200,
            status_text="OK",
        )


def _read_rows(path: Path) -> Iterable[dict[str, str]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            if not row:
                continue
            yield row
