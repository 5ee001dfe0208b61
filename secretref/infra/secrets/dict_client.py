from __future__ import annotations

from typing import Any, Dict, Tuple

from secretref.domain.error_codes import ErrorCode
from secretref.domain.models import SecretFetchRequest, SecretFetchResult
from secretref.domain.ports.secrets import SecretStoreClientProtocol
from secretref.errors import SecretFetchError

Key = Tuple[str, str]


class DictSecretStoreClient(SecretStoreClientProtocol):
    """
    Назначение:
        Простая in-memory реализация для тестов/ручных сценариев.
    """

    def __init__(self, mapping: Dict[Key, Any] | None = None):
        self._mapping: Dict[Key, Any] = mapping or {}
        self.requests: list[SecretFetchRequest] = []

    async def fetch_secret(self, request: SecretFetchRequest) -> SecretFetchResult:
        self.requests.append(request)
        key = (str(request.secret_type), str(request.id))
        if key not in self._mapping:
            raise SecretFetchError(
                f"Secret not found: {key[0]}/{key[1]}",
                status_code=404,
                code=ErrorCode.SECRET_NOT_FOUND.value,
                details=request.to_dict(),
            )
        return SecretFetchResult(body={"id": key[1], "payload": self._mapping[key]})

    def set_secret(self, secret_type: str, secret_id: str, value: Any) -> None:
        """Удобный сеттер для тестов/ручного наполнения."""
        self._mapping[(secret_type, secret_id)] = value
