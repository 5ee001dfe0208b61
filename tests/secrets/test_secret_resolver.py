from __future__ import annotations

import asyncio
import logging

import pytest

from secretref.domain.models import (
    EvaluatedValue,
    EvaluationDetails,
    SecretFetchRequest,
    SecretFetchResult,
    ValueType,
)
from secretref.domain.secret_resolver import SecretResolver
from secretref.errors import SecretFetchError


class StubProperty:
    def __init__(self, value, evaluated=None, name="db-password"):
        self.value = value
        self._evaluated = evaluated
        self._name = name
        self.evaluate_calls: list[tuple] = []

    def get_name(self) -> str:
        return self._name

    def secret_declaration(self):
        from secretref.domain.models import SecretDeclaration

        return SecretDeclaration.from_value(self.value)

    def evaluate(self, entity_id, entity_attributes):
        self.evaluate_calls.append((entity_id, entity_attributes))
        if callable(self._evaluated):
            return self._evaluated(entity_id, entity_attributes)
        return self._evaluated


class SpyCatalog:
    def __init__(self, prop, clients=None):
        self.prop = prop
        self.clients = clients if clients is not None else {}
        self.property_lookups = 0
        self.client_lookups = 0

    def get_property(self, property_id):
        self.property_lookups += 1
        return self.prop

    def get_secret_clients(self):
        self.client_lookups += 1
        return self.clients


class RecordingClient:
    def __init__(self, error: Exception | None = None):
        self.requests: list[SecretFetchRequest] = []
        self.returned: list[object] = []
        self.error = error

    def fetch_secret(self, request: SecretFetchRequest):
        self.requests.append(request)
        handle = self._fetch(request)
        self.returned.append(handle)
        return handle

    async def _fetch(self, request: SecretFetchRequest) -> SecretFetchResult:
        if self.error is not None:
            raise self.error
        return SecretFetchResult(body={"payload": f"value-of-{request.id}"}, headers={"x": "1"})


def evaluated(value) -> EvaluatedValue:
    return EvaluatedValue(value=value, details=EvaluationDetails(value_type=ValueType.DEFAULT_VALUE, reason="test"))


def make_resolver(prop, clients=None):
    catalog = SpyCatalog(prop, clients)
    return SecretResolver("db-password", catalog), catalog


def codes(caplog) -> list[str]:
    return [getattr(r, "code", None) for r in caplog.records if r.levelno == logging.ERROR]


@pytest.mark.parametrize("entity_id", ["", None])
def test_missing_entity_id_returns_none_without_lookups(entity_id, caplog):
    client = RecordingClient()
    prop = StubProperty({"secret_type": "vault"}, evaluated({"id": "sec-42"}))
    resolver, catalog = make_resolver(prop, {"db-password": client})

    assert resolver.resolve(entity_id, {"a": 1}) is None
    assert catalog.property_lookups == 0
    assert catalog.client_lookups == 0
    assert prop.evaluate_calls == []
    assert codes(caplog) == ["INVALID_ENTITY_ID"]


@pytest.mark.parametrize("declared", [None, {}, {"id": "x"}, "plain-string"])
def test_missing_secret_type_returns_none(declared, caplog):
    client = RecordingClient()
    prop = StubProperty(declared, evaluated({"id": "sec-42"}))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    assert resolver.resolve("E1", {"email": "a@b.c", "tier": 3}) is None
    assert prop.evaluate_calls == []
    assert client.requests == []
    assert codes(caplog) == ["MISSING_SECRET_TYPE"]
    assert "db-password" in caplog.records[-1].getMessage()


def test_evaluation_absence_returns_none(caplog):
    client = RecordingClient()
    prop = StubProperty({"secret_type": "vault"}, None)
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    assert resolver.resolve("E1", {}) is None
    assert client.requests == []
    assert codes(caplog) == ["EVALUATION_FAILED"]


@pytest.mark.parametrize("value", [None, {}, {"name": "no-id"}, "sec-42"])
def test_missing_nested_id_returns_none(value, caplog):
    client = RecordingClient()
    prop = StubProperty({"secret_type": "vault"}, evaluated(value))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    assert resolver.resolve("E1", {}) is None
    assert client.requests == []
    assert codes(caplog) == ["MISSING_SECRET_ID"]


def test_missing_secret_client_returns_none(caplog):
    prop = StubProperty({"secret_type": "vault"}, evaluated({"id": "sec-42"}))
    resolver, _catalog = make_resolver(prop, {"other-property": RecordingClient()})

    assert resolver.resolve("E1", {}) is None
    assert codes(caplog) == ["MISSING_SECRET_CLIENT"]


def test_client_receives_secret_type_and_id():
    client = RecordingClient()
    prop = StubProperty({"secret_type": "vault"}, evaluated({"id": "sec-42"}))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    handle = resolver.resolve("E1", {})
    result = asyncio.run(handle)

    assert client.requests == [SecretFetchRequest(secret_type="vault", id="sec-42")]
    assert client.requests[0].to_dict() == {"secretType": "vault", "id": "sec-42"}
    assert result.body == {"payload": "value-of-sec-42"}
    assert prop.evaluate_calls == [("E1", {})]


def test_returned_handle_is_the_client_handle():
    client = RecordingClient()
    prop = StubProperty({"secret_type": "vault"}, evaluated({"id": "sec-42"}))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    handle = resolver.resolve("E1", {})

    assert handle is client.returned[0]
    asyncio.run(handle)


def test_client_failure_propagates_unchanged():
    error = SecretFetchError("HTTP 503", status_code=503, code="HTTP_ERROR")
    client = RecordingClient(error=error)
    prop = StubProperty({"secret_type": "vault"}, evaluated({"id": "sec-42"}))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    handle = resolver.resolve("E1", {})
    assert handle is not None

    with pytest.raises(SecretFetchError) as exc:
        asyncio.run(handle)
    assert exc.value is error


def test_calls_are_independent_between_entities():
    client = RecordingClient()
    ids = {"E1": "sec-1", "E2": "sec-2"}
    prop = StubProperty({"secret_type": "kv"}, lambda entity_id, _attrs: evaluated({"id": ids[entity_id]}))
    resolver, catalog = make_resolver(prop, {"db-password": client})

    first = resolver.resolve("E1", {"region": "eu"})
    second = resolver.resolve("E2", {"region": "us"})

    first_result = asyncio.run(first)
    second_result = asyncio.run(second)

    assert [r.id for r in client.requests] == ["sec-1", "sec-2"]
    assert first_result.body == {"payload": "value-of-sec-1"}
    assert second_result.body == {"payload": "value-of-sec-2"}
    assert first is not second
    # клиент берётся из каталога на каждый вызов
    assert catalog.client_lookups == 2


def test_client_is_looked_up_fresh_on_each_call():
    old_client = RecordingClient()
    new_client = RecordingClient()
    clients = {"db-password": old_client}
    prop = StubProperty({"secret_type": "kv"}, evaluated({"id": "sec-1"}))
    resolver, _catalog = make_resolver(prop, clients)

    asyncio.run(resolver.resolve("E1", {}))
    clients["db-password"] = new_client
    asyncio.run(resolver.resolve("E1", {}))

    assert len(old_client.requests) == 1
    assert len(new_client.requests) == 1


def test_property_id_is_read_only():
    resolver, _catalog = make_resolver(StubProperty({"secret_type": "kv"}))

    assert resolver.property_id == "db-password"
    with pytest.raises(AttributeError):
        resolver.property_id = "other"


def test_present_but_null_type_and_id_are_forwarded():
    client = RecordingClient()
    prop = StubProperty({"secret_type": None}, evaluated({"id": None}))
    resolver, _catalog = make_resolver(prop, {"db-password": client})

    handle = resolver.resolve("E1", {})

    assert handle is not None
    asyncio.run(handle)
    assert client.requests == [SecretFetchRequest(secret_type=None, id=None)]
    assert client.requests[0].to_dict() == {"secretType": None, "id": None}
