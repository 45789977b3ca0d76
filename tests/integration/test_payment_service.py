"""End-to-end tests of the payment REST API over a real store."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from expay.adapters.inbound.rest_api import URL_PREFIX, create_app
from expay.adapters.outbound.storage_engine import StorageEngine
from expay.domain.entities import Payment
from expay.domain.value_objects import sequence_to_id
from expay.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def client(engine: StorageEngine, metrics_registry: MetricsRegistry) -> TestClient:
    """Provide a test client over the engine's payment bucket."""
    payments = engine.bucket("payment", Payment)
    return TestClient(create_app(payments, metrics=metrics_registry))


@pytest.mark.integration
class TestPaymentService:
    """Payment lifecycle through HTTP."""

    def test_lifecycle(self, client: TestClient, payment_json: dict[str, Any]) -> None:
        """Create, fetch, update, list and delete a payment."""
        created = client.post(URL_PREFIX, json=payment_json)
        assert created.status_code == 201
        payment_id = created.json()["data"][0]["id"]
        assert payment_id == sequence_to_id(1)
        location = created.headers["Location"]
        assert location == f"{URL_PREFIX}/{payment_id}"

        fetched = client.get(location)
        assert fetched.status_code == 200
        assert fetched.json()["data"][0]["attributes"] == payment_json["attributes"]

        payment_json["attributes"]["amount"] = "42.00"
        updated = client.put(location, json=payment_json)
        assert updated.status_code == 200
        assert client.get(location).json()["data"][0]["attributes"]["amount"] == "42.00"

        listed = client.get(URL_PREFIX).json()
        assert [p["id"] for p in listed["data"]] == [payment_id]
        assert listed["links"] == {"self": URL_PREFIX}

        assert client.delete(location).status_code == 200
        assert client.get(location).status_code == 404
        assert client.get(URL_PREFIX).json() == {"links": {"self": URL_PREFIX}}

    def test_list_before_first_write(self, client: TestClient) -> None:
        """A store that was never written lists as empty."""
        response = client.get(URL_PREFIX)
        assert response.status_code == 200
        assert response.json() == {"links": {"self": URL_PREFIX}}

    def test_update_requires_existing(self, client: TestClient, payment_json: dict[str, Any]) -> None:
        """PUT does not create payments, even though the store would upsert."""
        response = client.put(f"{URL_PREFIX}/{sequence_to_id(1)}", json=payment_json)
        assert response.status_code == 404
        assert client.get(URL_PREFIX).json() == {"links": {"self": URL_PREFIX}}

    def test_malformed_id(self, client: TestClient) -> None:
        """Ids that cannot exist are not found."""
        response = client.get(f"{URL_PREFIX}/not-an-id")
        assert response.status_code == 404
        assert response.json() == {"code": 404, "message": "item not found"}

    def test_ids_increase(self, client: TestClient, payment_json: dict[str, Any]) -> None:
        """Payments are listed in creation order."""
        ids = [client.post(URL_PREFIX, json=payment_json).json()["data"][0]["id"] for _ in range(3)]
        assert ids == [sequence_to_id(n) for n in (1, 2, 3)]
        assert [p["id"] for p in client.get(URL_PREFIX).json()["data"]] == ids

    def test_invalid_payment_not_stored(self, client: TestClient, payment_json: dict[str, Any]) -> None:
        payment_json["attributes"]["amount"] = ""
        assert client.post(URL_PREFIX, json=payment_json).status_code == 400
        assert client.get(URL_PREFIX).json() == {"links": {"self": URL_PREFIX}}

    def test_iterators_released(self, client: TestClient, engine: StorageEngine, payment_json: dict[str, Any]) -> None:
        """Listing leaves no read transaction behind."""
        client.post(URL_PREFIX, json=payment_json)
        client.get(URL_PREFIX)
        assert engine.stats()["read_transactions_open"] == 0
