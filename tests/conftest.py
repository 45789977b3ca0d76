"""Pytest configuration and fixtures for expay tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
from prometheus_client import CollectorRegistry

from expay.adapters.outbound.storage_engine import StorageEngine
from expay.infrastructure.config import Config, ServerConfig, StorageConfig
from expay.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration with a temporary store file."""
    return Config(
        storage=StorageConfig(
            path=temp_dir / "data" / "storage.bolt",
            lock_timeout_seconds=0,
            sync_mode="none",  # Faster for tests
        ),
        server=ServerConfig(host="127.0.0.1", port=0),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def store_path(temp_dir: Path) -> Path:
    """Provide the path of a store file that does not exist yet."""
    return temp_dir / "test.bolt"


@pytest.fixture
def engine(
    store_path: Path, metrics_registry: MetricsRegistry
) -> Generator[StorageEngine, None, None]:
    """Provide an open storage engine on a fresh store file."""
    engine = StorageEngine.open(
        store_path, lock_timeout=0, sync_mode="none", metrics=metrics_registry
    )
    yield engine
    engine.close()


@pytest.fixture
def payment_json() -> dict[str, Any]:
    """Provide a complete payment resource as a client would send it."""
    return {
        "type": "Payment",
        "version": 0,
        "organisation_id": "743d5b63-8e6f-432e-a8fa-c5d8d2ee5fcb",
        "attributes": {
            "amount": "100.21",
            "beneficiary_party": {
                "account_name": "W Owens",
                "account_number": "31926819",
                "account_number_code": "BBAN",
                "account_type": 0,
                "address": "1 The Beneficiary Localtown SE2",
                "bank_id": "403000",
                "bank_id_code": "GBDSC",
                "name": "Wilfred Jeremiah Owens",
            },
            "charges_information": {
                "bearer_code": "SHAR",
                "sender_charges": [
                    {"amount": "5.00", "currency": "GBP"},
                    {"amount": "10.00", "currency": "USD"},
                ],
                "receiver_charges_amount": "1.00",
                "receiver_charges_currency": "USD",
            },
            "currency": "GBP",
            "debtor_party": {
                "account_name": "EJ Brown Black",
                "account_number": "GB29XABC10161234567801",
                "account_number_code": "IBAN",
                "address": "10 Debtor Crescent Sourcetown NE1",
                "bank_id": "203301",
                "bank_id_code": "GBDSC",
                "name": "Emelia Jane Brown",
            },
            "end_to_end_reference": "Wil piano Jan",
            "fx": {
                "contract_reference": "FX123",
                "exchange_rate": "2.00000",
                "original_amount": "200.42",
                "original_currency": "USD",
            },
            "numeric_reference": "1002001",
            "payment_id": "123456789012345678",
            "payment_purpose": "Paying for goods/services",
            "payment_scheme": "FPS",
            "payment_type": "Credit",
            "processing_date": "2017-01-18",
            "reference": "Payment for Em's piano lessons",
            "scheme_payment_sub_type": "InternetBanking",
            "scheme_payment_type": "ImmediatePayment",
            "sponsor_party": {
                "account_number": "56781234",
                "bank_id": "123123",
                "bank_id_code": "GBDSC",
            },
        },
    }


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
