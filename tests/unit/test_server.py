"""Unit tests for the payment server wiring and command line."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from expay.application.server import PaymentServer, build_parser, load_config
from expay.domain.errors import StoreIOError
from expay.infrastructure.config import Config
from expay.infrastructure.metrics import MetricsRegistry


@pytest.mark.unit
class TestCommandLine:
    """Tests for command-line parsing."""

    def test_flags_override_config(self, temp_dir: Path) -> None:
        """Flags take precedence over the environment configuration."""
        config = load_config(
            [
                "--host", "127.0.0.1",
                "--port", "9000",
                "--storage", str(temp_dir / "pay.bolt"),
                "--log-level", "DEBUG",
            ]
        )

        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000
        assert config.storage.path == temp_dir / "pay.bolt"
        assert config.observability.log_level == "DEBUG"

    def test_global_config_untouched(self) -> None:
        """Flags apply to a copy of the global configuration."""
        from expay.infrastructure.config import get_config

        before = get_config().server.port
        load_config(["--port", "1234"])
        assert get_config().server.port == before

    def test_no_flags(self) -> None:
        """Without flags the environment configuration is used."""
        config = load_config([])
        assert isinstance(config, Config)

    def test_bad_port(self) -> None:
        """Non-numeric ports are rejected by the parser."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--port", "http"])


@pytest.mark.unit
class TestPaymentServer:
    """Tests for PaymentServer lifecycle."""

    def test_start_and_stop(self, test_config: Config, metrics_registry: MetricsRegistry) -> None:
        """Starting opens the store; stopping releases it."""
        server = PaymentServer(test_config, metrics=metrics_registry)
        server.start()
        try:
            assert test_config.storage.path.exists()
            assert not server.engine.closed
        finally:
            server.stop()
        server.stop()

        with pytest.raises(RuntimeError):
            server.app

    def test_serves_payments(
        self, test_config: Config, metrics_registry: MetricsRegistry, payment_json: dict
    ) -> None:
        """The started application serves the payment API."""
        with PaymentServer(test_config, metrics=metrics_registry) as server:
            client = TestClient(server.app)
            created = client.post("/v1/payments", json=payment_json)
            assert created.status_code == 201
            assert client.get(created.headers["Location"]).status_code == 200

    def test_store_already_owned(
        self, test_config: Config, metrics_registry: MetricsRegistry
    ) -> None:
        """A second server on the same store file fails to start."""
        with PaymentServer(test_config, metrics=metrics_registry):
            with pytest.raises(StoreIOError):
                PaymentServer(test_config, metrics=metrics_registry).start()
