from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import typer

from secretref.common.run_id import generate_run_id, validate_run_id
from secretref.common.masking import maskSecret
from secretref.config import Settings, load_settings
from secretref.errors import AppError, CatalogError
from secretref.infra.catalog import InMemoryConfigurationCatalog, load_catalog_file
from secretref.infra.secrets import FileVaultSecretStoreClient, SecretsManagerClient
from secretref.logging_setup import closeCommandLogger, createCommandLogger, logEvent
from secretref.usecases.resolve_secret_usecase import ResolveSecretUseCase

app = typer.Typer(no_args_is_help=True, add_completion=False)

def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов).
    """
    typer.echo(
        f"run_id={runId} command={command} "
        f"catalog={settings.catalog_path} sm_url={settings.sm_url} "
        f"sm_api_key={maskSecret(settings.sm_api_key)} vault_file={settings.vault_file} sources={sources}"
    )

def parseAttributes(pairs: list[str] | None) -> dict[str, Any]:
    """
    Назначение:
        Разбирает атрибуты сущности из повторяющихся опций --attr key=value.

    Алгоритм:
        - Значение пробуется как JSON (числа, true/false, строки в кавычках).
        - Если не JSON — берётся как строка.
        - Пара без '=' или с пустым ключом -> ValueError.
    """
    attributes: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"Invalid attribute (expected key=value): {pair}")
        try:
            attributes[key] = json.loads(raw)
        except ValueError:
            attributes[key] = raw
    return attributes

def requireCatalog(settings: Settings, logger: logging.Logger, runId: str) -> InMemoryConfigurationCatalog:
    """
    Назначение:
        Загружает каталог свойств; при ошибке завершает команду с exit code 2.
    """
    if not settings.catalog_path:
        logEvent(logger, logging.ERROR, runId, "config", "Catalog path is not set")
        typer.echo("ERROR: --catalog is required", err=True)
        raise typer.Exit(code=2)
    try:
        return load_catalog_file(settings.catalog_path, logger=logger)
    except CatalogError as err:
        logEvent(logger, logging.ERROR, runId, "catalog", f"Catalog load failed: code={err.code} message={err.message}")
        typer.echo(f"ERROR: {err.message}", err=True)
        raise typer.Exit(code=2)

def requireSecretStore(settings: Settings, logger: logging.Logger, runId: str) -> None:
    """
    Назначение:
        Проверяет, что настроен источник секретов (Secrets Manager или vault-файл).
    """
    if settings.vault_file:
        return
    missing = []
    if not settings.sm_url:
        missing.append("sm_url")
    if not settings.sm_api_key:
        missing.append("sm_api_key")
    if missing:
        logEvent(logger, logging.ERROR, runId, "config", "Missing secret store settings")
        typer.echo(f"ERROR: missing secret store settings: {', '.join(missing)}", err=True)
        raise typer.Exit(code=2)

def createSecretClient(settings: Settings):
    """
    Назначение:
        Создаёт клиента хранилища секретов по настройкам.
        vault_file имеет приоритет над Secrets Manager.
    """
    if settings.vault_file:
        return FileVaultSecretStoreClient(settings.vault_file)
    return SecretsManagerClient(
        baseUrl=settings.sm_url,
        apiKey=settings.sm_api_key,
        timeoutSeconds=settings.timeout_seconds,
        tlsSkipVerify=settings.tls_skip_verify,
        caFile=settings.ca_file,
        retries=settings.retries,
        retryBackoffSeconds=settings.retry_backoff_seconds,
    )

def requireAttributes(attrs: list[str] | None, logger: logging.Logger, runId: str) -> dict[str, Any]:
    try:
        return parseAttributes(attrs)
    except ValueError as err:
        logEvent(logger, logging.ERROR, runId, "cli", str(err))
        typer.echo(f"ERROR: {err}", err=True)
        raise typer.Exit(code=2)

async def resolveSecretAsync(
    catalog: InMemoryConfigurationCatalog,
    settings: Settings,
    propertyId: str,
    entityId: str,
    attributes: dict[str, Any],
    reveal: bool,
    logger: logging.Logger,
    runId: str,
) -> int:
    """
    Назначение:
        Асинхронная часть resolve-secret: клиент создаётся и закрывается внутри event loop.

    Выходные данные:
        int
            0 — секрет получен, 1 — не разрешено или ошибка получения, 2 — неизвестное свойство.
    """
    client = createSecretClient(settings)
    try:
        try:
            resolver = catalog.secret_property(propertyId, client, logger=logger)
        except CatalogError as err:
            logEvent(logger, logging.ERROR, runId, "catalog", err.message)
            typer.echo(f"ERROR: {err.message}", err=True)
            return 2

        try:
            summary = await ResolveSecretUseCase(reveal=reveal).run(
                resolver=resolver,
                entity_id=entityId,
                entity_attributes=attributes,
                logger=logger,
                run_id=runId,
            )
        except AppError as err:
            typer.echo(f"ERROR: secret fetch failed: code={err.code} message={err.message}", err=True)
            return 1

        typer.echo(json.dumps(summary, ensure_ascii=False, default=str))
        return 0 if summary["status"] == "resolved" else 1
    finally:
        aclose = getattr(client, "aclose", None)
        if aclose is not None:
            await aclose()

def runResolveSecretCommand(
    ctx: typer.Context,
    propertyId: str,
    entityId: str,
    attrs: list[str] | None,
    reveal: bool,
) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    logger, _logFilePath = createCommandLogger("resolve-secret", settings.log_dir, runId, settings.log_level)
    exitCode = 0
    try:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, "resolve-secret", settings, sources)
        catalog = requireCatalog(settings, logger, runId)
        requireSecretStore(settings, logger, runId)
        attributes = requireAttributes(attrs, logger, runId)
        exitCode = asyncio.run(
            resolveSecretAsync(catalog, settings, propertyId, entityId, attributes, reveal, logger, runId)
        )
        logEvent(logger, logging.INFO, runId, "core", f"Command finished: exit_code={exitCode}")
    finally:
        closeCommandLogger(logger)
    if exitCode:
        raise typer.Exit(code=exitCode)

def runEvaluateCommand(ctx: typer.Context, propertyId: str, entityId: str, attrs: list[str] | None) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]

    logger, _logFilePath = createCommandLogger("evaluate", settings.log_dir, runId, settings.log_level)
    exitCode = 0
    try:
        catalog = requireCatalog(settings, logger, runId)
        attributes = requireAttributes(attrs, logger, runId)
        try:
            prop = catalog.get_property(propertyId)
        except CatalogError as err:
            typer.echo(f"ERROR: {err.message}", err=True)
            raise typer.Exit(code=2)
        evaluated = prop.evaluate(entityId, attributes)
        if evaluated is None:
            logEvent(logger, logging.WARNING, runId, "evaluate", f"Property {propertyId} evaluation returned no value")
            typer.echo("ERROR: property evaluation returned no value", err=True)
            exitCode = 1
        else:
            typer.echo(
                json.dumps(
                    {
                        "property_id": propertyId,
                        "entity_id": entityId,
                        "value": evaluated.value,
                        "details": evaluated.details.to_dict(),
                    },
                    ensure_ascii=False,
                    default=str,
                )
            )
    finally:
        closeCommandLogger(logger)
    if exitCode:
        raise typer.Exit(code=exitCode)

@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (letters, digits, . _ -). If omitted, a UUID is generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    catalog: str | None = typer.Option(None, "--catalog", help="Path to properties catalog (YAML/JSON)"),
    smUrl: str | None = typer.Option(None, "--sm-url", help="Secrets Manager base URL"),
    smApiKey: str | None = typer.Option(None, "--sm-api-key", help="Secrets Manager API key (avoid; use env)"),
    vaultFile: str | None = typer.Option(None, "--vault-file", help="Dev vault CSV instead of Secrets Manager"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="Secret fetch timeout in seconds"),
    retries: int | None = typer.Option(None, "--retries", help="Retry attempts for secret fetch"),
    retryBackoffSeconds: float | None = typer.Option(None, "--retry-backoff-seconds", help="Base backoff for retries"),
    tlsSkipVerify: bool | None = typer.Option(None, "--tls-skip-verify", help="Disable TLS verification"),
    caFile: str | None = typer.Option(None, "--ca-file", help="CA file path"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - сохраняет всё в ctx.obj для подкоманд
    """
    try:
        loaded = load_settings(
            config_path=config,
            cli_overrides={
                "catalog_path": catalog,
                "sm_url": smUrl,
                "sm_api_key": smApiKey,
                "vault_file": vaultFile,
                "timeout_seconds": timeoutSeconds,
                "retries": retries,
                "retry_backoff_seconds": retryBackoffSeconds,
                "tls_skip_verify": tlsSkipVerify,
                "ca_file": caFile,
                "log_dir": logDir,
                "log_level": logLevel,
            },
        )
    except ValueError as err:
        typer.echo(f"ERROR: invalid settings: {err}", err=True)
        raise typer.Exit(code=2)

    if runId is not None:
        try:
            validate_run_id(runId)
        except ValueError as err:
            typer.echo(f"ERROR: {err}", err=True)
            raise typer.Exit(code=2)

    Path(loaded.settings.log_dir).mkdir(parents=True, exist_ok=True)
    ctx.obj = {
        "runId": runId or generate_run_id(),
        "settings": loaded.settings,
        "sources": loaded.sources_used,
    }

@app.command("properties")
def listProperties(ctx: typer.Context):
    """Список свойств каталога."""
    settings: Settings = ctx.obj["settings"]
    runId = ctx.obj["runId"]
    logger, _logFilePath = createCommandLogger("properties", settings.log_dir, runId, settings.log_level)
    try:
        catalog = requireCatalog(settings, logger, runId)
        for prop in catalog.list_properties():
            secret = "yes" if prop.secret_declaration() is not None else "no"
            typer.echo(f"{prop.property_id}\t{prop.get_name()}\t{prop.type}\tsecret={secret}")
    finally:
        closeCommandLogger(logger)

@app.command("evaluate")
def evaluate(
    ctx: typer.Context,
    propertyId: str = typer.Argument(..., help="Property id"),
    entityId: str = typer.Option(..., "--entity-id", help="Entity id"),
    attrs: list[str] | None = typer.Option(None, "--attr", help="Entity attribute key=value (repeatable)"),
):
    runEvaluateCommand(ctx, propertyId, entityId, attrs)

@app.command("resolve-secret")
def resolveSecret(
    ctx: typer.Context,
    propertyId: str = typer.Argument(..., help="Secret property id"),
    entityId: str = typer.Option(..., "--entity-id", help="Entity id"),
    attrs: list[str] | None = typer.Option(None, "--attr", help="Entity attribute key=value (repeatable)"),
    reveal: bool = typer.Option(False, "--reveal", help="Print secret payload unmasked"),
):
    runResolveSecretCommand(ctx, propertyId, entityId, attrs, reveal)
