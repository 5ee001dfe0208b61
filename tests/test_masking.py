from __future__ import annotations

import pytest

from secretref.common.masking import errorBodySnippet, maskSecret, maskSecretBody
from secretref.common.run_id import generate_run_id, validate_run_id


def test_mask_secret_keeps_none():
    assert maskSecret(None) is None
    assert maskSecret("key") == "***"


def test_mask_secret_body_keeps_metadata_only():
    body = {
        "id": "sec-1",
        "secret_type": "kv",
        "updated_at": "2024-01-01T00:00:00Z",
        "payload": "s3cr3t",
        "data": {"username": "svc", "password": "pw", "name": "db"},
        "versions": [{"version": 2, "value": "old"}],
    }

    assert maskSecretBody(body) == {
        "id": "sec-1",
        "secret_type": "kv",
        "updated_at": "2024-01-01T00:00:00Z",
        "payload": "***",
        "data": {"username": "***", "password": "***", "name": "db"},
        "versions": [{"version": 2, "value": "***"}],
    }


def test_mask_secret_body_masks_nested_value_under_metadata_key():
    assert maskSecretBody({"id": {"raw": "x"}}) == {"id": {"raw": "***"}}


@pytest.mark.parametrize("body,expected", [(None, None), ("plain-text-secret", "***"), (42, "***")])
def test_mask_secret_body_non_mapping(body, expected):
    assert maskSecretBody(body) == expected


def test_error_body_snippet_flattens_and_truncates():
    assert errorBodySnippet(None) is None
    assert errorBodySnippet("  \n ") is None
    assert errorBodySnippet("not\n  found") == "not found"
    snippet = errorBodySnippet("x" * 300, limit=10)
    assert snippet == "xxxxxxx..."


def test_run_id_validation():
    assert validate_run_id(generate_run_id())
    assert validate_run_id("nightly-2024.01_a") == "nightly-2024.01_a"
    for bad in ("", "../x", "a/b", "-lead", "a b"):
        with pytest.raises(ValueError):
            validate_run_id(bad)
