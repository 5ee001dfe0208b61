from __future__ import annotations

import logging
from pathlib import Path

import pytest

from secretref.domain.property import Property
from secretref.infra.catalog import InMemoryConfigurationCatalog
from secretref.logging_setup import closeCommandLogger, createCommandLogger, logEvent, mapLogLevel


def test_map_log_level():
    assert mapLogLevel("warn") == logging.WARNING
    assert mapLogLevel(" DEBUG ") == logging.DEBUG
    with pytest.raises(ValueError):
        mapLogLevel("TRACE")


def test_command_logger_writes_diagnostics_with_code(tmp_path: Path):
    logger, logFilePath = createCommandLogger("resolve-secret", str(tmp_path), "run1", "INFO")
    catalog = InMemoryConfigurationCatalog(properties=[Property(property_id="p1", name="Plain", value="x")])
    try:
        logEvent(logger, logging.INFO, "run1", "core", "Command started")
        assert catalog.secret_property("p1", logger=logger).resolve("E1", {}) is None
    finally:
        closeCommandLogger(logger)

    text = Path(logFilePath).read_text(encoding="utf-8")
    assert Path(logFilePath).name == "resolve-secret_run1.log"
    assert "runId=run1 comp=core code=- msg=Command started" in text
    assert "comp=secret_property code=MISSING_SECRET_TYPE" in text
    assert "Plain" in text
