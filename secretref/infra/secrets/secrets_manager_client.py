from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx

from secretref.common.masking import errorBodySnippet
from secretref.domain.error_codes import ErrorCode
from secretref.domain.models import SecretFetchRequest, SecretFetchResult
from secretref.domain.ports.secrets import SecretStoreClientProtocol
from secretref.errors import SecretFetchError


class SecretsManagerClient(SecretStoreClientProtocol):
    def __init__(
        self,
        baseUrl: str,
        apiKey: str,
        timeoutSeconds: float = 20.0,
        tlsSkipVerify: bool = False,
        caFile: str | None = None,
        retries: int = 3,
        retryBackoffSeconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Назначение:
            Асинхронный клиент REST API хранилища секретов с простой политикой ретраев.
        Контракт:
            - baseUrl, apiKey обязательны.
            - retries/retryBackoffSeconds управляют повторными попытками (429/5xx/сеть).
        """
        verify: bool | str = True
        if tlsSkipVerify:
            verify = False
        elif caFile:
            verify = caFile

        self.baseUrl = baseUrl.rstrip("/")
        self.apiKey = apiKey
        self.retries = retries
        self.retryBackoffSeconds = retryBackoffSeconds
        self.retry_attempts = 0

        self.client = httpx.AsyncClient(
            base_url=self.baseUrl,
            timeout=timeoutSeconds,
            verify=verify,
            transport=transport,
        )

    def getRetryAttempts(self) -> int:
        """Возвращает количество выполненных повторных попыток."""
        return self.retry_attempts

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "Authorization": f"Bearer {self.apiKey}",
        }

    def _should_retry(self, resp: httpx.Response) -> bool:
        """Решает, стоит ли повторить запрос (429 или 5xx)."""
        if resp.status_code == 429:
            return True
        if 500 <= resp.status_code <= 599:
            return True
        return False

    async def _sleep_backoff(self, attempt: int) -> None:
        """Задержка с экспоненциальным ростом для ретраев."""
        delay = self.retryBackoffSeconds * (2 ** attempt)
        await asyncio.sleep(delay)

    def _secret_path(self, request: SecretFetchRequest) -> str:
        secret_type = quote(str(request.secret_type), safe="")
        secret_id = quote(str(request.id), safe="")
        return f"/api/v1/secrets/{secret_type}/{secret_id}"

    async def fetch_secret(self, request: SecretFetchRequest) -> SecretFetchResult:
        """
        Назначение:
            GET секрета по типу и id.
        Контракт:
            - 2xx -> SecretFetchResult(body, headers, status_code, status_text).
            - Иначе (после ретраев) -> SecretFetchError.
        """
        path = self._secret_path(request)
        attempt = 0
        while True:
            try:
                resp = await self.client.get(path, headers=self._headers())
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= self.retries:
                    raise SecretFetchError(
                        "Network error",
                        status_code=None,
                        retryable=False,
                        code=ErrorCode.NETWORK_ERROR.value,
                        details=request.to_dict(),
                    ) from exc
                self.retry_attempts += 1
                await self._sleep_backoff(attempt)
                attempt += 1
                continue

            if 200 <= resp.status_code <= 299:
                return self._to_result(resp)

            if self._should_retry(resp) and attempt < self.retries:
                self.retry_attempts += 1
                await self._sleep_backoff(attempt)
                attempt += 1
                continue

            body_snippet = errorBodySnippet(resp.text)
            raise SecretFetchError(
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                body_snippet=body_snippet,
                retryable=self._should_retry(resp),
                code=ErrorCode.from_status(resp.status_code).value,
                details={**request.to_dict(), "body_snippet": body_snippet},
            )

    def _to_result(self, resp: httpx.Response) -> SecretFetchResult:
        body = None
        if resp.text:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
        return SecretFetchResult(
            body=body,
            headers=dict(resp.headers),
            status_code=resp.status_code,
            status_text=resp.reason_phrase,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
