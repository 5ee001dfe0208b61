from __future__ import annotations

import logging
import time
from typing import Any, Mapping

from secretref.common.masking import maskSecretBody
from secretref.common.time import getDurationMs
from secretref.domain.secret_resolver import SecretResolver
from secretref.errors import AppError
from secretref.logging_setup import logEvent


class ResolveSecretUseCase:
    """
    Назначение/ответственность:
        Use-case для CLI: resolve -> await -> сводка результата.
    Ограничения:
        - Ошибку получения секрета логирует и пробрасывает без изменений.
        - Повторов не делает.
    """

    def __init__(self, reveal: bool = False):
        self.reveal = reveal

    async def run(
        self,
        resolver: SecretResolver,
        entity_id: str,
        entity_attributes: Mapping[str, Any] | None,
        logger: logging.Logger,
        run_id: str,
    ) -> dict[str, Any]:
        start = time.monotonic()
        handle = resolver.resolve(entity_id, entity_attributes)
        if handle is None:
            logEvent(logger, logging.WARNING, run_id, "resolve", f"Property {resolver.property_id} was not resolved for entity {entity_id}")
            return {
                "property_id": resolver.property_id,
                "entity_id": entity_id,
                "status": "unresolved",
            }

        try:
            result = await handle
        except AppError as err:
            logEvent(logger, logging.ERROR, run_id, "resolve", f"Secret fetch failed: code={err.code} message={err.message}")
            raise
        except Exception as err:
            logEvent(logger, logging.ERROR, run_id, "resolve", f"Secret fetch failed: {type(err).__name__}")
            raise

        duration_ms = getDurationMs(start, time.monotonic())
        logEvent(
            logger,
            logging.INFO,
            run_id,
            "resolve",
            f"Secret fetched for property {resolver.property_id}: status={result.status_code} duration_ms={duration_ms}",
        )
        return {
            "property_id": resolver.property_id,
            "entity_id": entity_id,
            "status": "resolved",
            "status_code": result.status_code,
            "status_text": result.status_text,
            "body": result.body if self.reveal else maskSecretBody(result.body),
            "duration_ms": duration_ms,
        }
