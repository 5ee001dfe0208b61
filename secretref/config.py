from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import yaml


@dataclass(frozen=True)
class Settings:
    # Catalog
    catalog_path: str | None = None

    # Secrets Manager
    sm_url: str | None = None
    sm_api_key: str | None = None
    vault_file: str | None = None
    timeout_seconds: float = 20.0
    retries: int = 3
    retry_backoff_seconds: float = 0.5
    tls_skip_verify: bool = False
    ca_file: str | None = None

    # Logging
    log_dir: str = "./logs"
    log_level: str = "INFO"


@dataclass(frozen=True)
class LoadedSettings:
    settings: Settings
    sources_used: list[str]


_ENV_NAMES = {
    "catalog_path": "SECRETREF_CATALOG",
    "sm_url": "SECRETREF_SM_URL",
    "sm_api_key": "SECRETREF_SM_API_KEY",
    "vault_file": "SECRETREF_VAULT_FILE",
    "timeout_seconds": "SECRETREF_TIMEOUT_SECONDS",
    "retries": "SECRETREF_RETRIES",
    "retry_backoff_seconds": "SECRETREF_RETRY_BACKOFF_SECONDS",
    "tls_skip_verify": "SECRETREF_TLS_SKIP_VERIFY",
    "ca_file": "SECRETREF_CA_FILE",
    "log_dir": "SECRETREF_LOG_DIR",
    "log_level": "SECRETREF_LOG_LEVEL",
}


def _read_yaml_config(path: Path) -> dict:
    if not path.exists():
        return {}
    if not path.is_file():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            return {}
        return data


def _env_get(name: str) -> str | None:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return None
    return v.strip()


def parse_int(v: str | None) -> int | None:
    if v is None:
        return None
    return int(v)


def parse_float(v: str | None) -> float | None:
    if v is None:
        return None
    return float(v)


def parse_bool(v: str | None) -> bool | None:
    if v is None:
        return None
    vv = v.lower()
    if vv in ("1", "true", "yes", "y"):
        return True
    if vv in ("0", "false", "no", "n"):
        return False
    raise ValueError(f"Invalid boolean env value: {v}")


_ENV_PARSERS = {
    "timeout_seconds": parse_float,
    "retries": parse_int,
    "retry_backoff_seconds": parse_float,
    "tls_skip_verify": parse_bool,
}


def _convert(key: str, value, cast):
    if isinstance(value, (bool, dict, list)):
        raise ValueError(f"Invalid value for {key}: {value!r}")
    try:
        return cast(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {key}: {value!r}") from exc


def _convert_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return parse_bool(value)
    raise ValueError(f"Invalid value for {key}: {value!r}")


def load_settings(
    config_path: str | None,
    cli_overrides: dict,
) -> LoadedSettings:
    """
    Priority: CLI > ENV > config > defaults
    """
    sources: list[str] = []
    defaults = Settings()

    # 1) config file
    cfg: dict = {}
    if config_path:
        cfg = _read_yaml_config(Path(config_path))
        if cfg:
            sources.append("config")

    # 2) env
    env = {key: _env_get(name) for key, name in _ENV_NAMES.items()}
    if any(v is not None for v in env.values()):
        sources.append("env")

    # null in config means "not set"
    merged = {
        key: cfg[key] if cfg.get(key) is not None else getattr(defaults, key)
        for key in _ENV_NAMES
    }

    for key, raw in env.items():
        if raw is None:
            continue
        parser = _ENV_PARSERS.get(key)
        merged[key] = parser(raw) if parser else raw

    # 3) apply CLI overrides (only those explicitly passed)
    if any(v is not None for v in cli_overrides.values()):
        sources.append("cli")

    for k, v in cli_overrides.items():
        if v is None:
            continue
        merged[k] = v

    settings = Settings(
        catalog_path=merged["catalog_path"],
        sm_url=merged["sm_url"],
        sm_api_key=merged["sm_api_key"],
        vault_file=merged["vault_file"],
        timeout_seconds=_convert("timeout_seconds", merged["timeout_seconds"], float),
        retries=_convert("retries", merged["retries"], int),
        retry_backoff_seconds=_convert("retry_backoff_seconds", merged["retry_backoff_seconds"], float),
        tls_skip_verify=_convert_bool("tls_skip_verify", merged["tls_skip_verify"]),
        ca_file=merged["ca_file"],
        log_dir=merged["log_dir"],
        log_level=str(merged["log_level"]),
    )

    return LoadedSettings(settings=settings, sources_used=sources)
