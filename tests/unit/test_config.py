"""Unit tests for configuration module."""

from __future__ import annotations

from pathlib import Path

import pytest

from expay.infrastructure.config import Config, ServerConfig, StorageConfig, get_config


@pytest.mark.unit
class TestConfig:
    """Tests for Config class."""

    def test_default_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default configuration values."""
        for name in ("EXPAY_STORAGE__PATH", "EXPAY_SERVER__PORT"):
            monkeypatch.delenv(name, raising=False)
        config = Config()

        assert config.storage.path == Path("storage.bolt")
        assert config.storage.bucket == "payment"
        assert config.storage.sync_mode == "fsync"
        assert config.server.port == 8080
        assert config.server.shutdown_timeout_seconds == 10
        assert config.server.metrics_port is None

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
        """Nested settings are read from EXPAY_ variables."""
        monkeypatch.setenv("EXPAY_STORAGE__PATH", str(temp_dir / "pay.bolt"))
        monkeypatch.setenv("EXPAY_SERVER__PORT", "9090")

        config = Config()

        assert config.storage.path == temp_dir / "pay.bolt"
        assert config.server.port == 9090

    def test_ensure_directories(self, temp_dir: Path) -> None:
        """Test that ensure_directories creates the store's directory."""
        config = Config(storage=StorageConfig(path=temp_dir / "a" / "b" / "storage.bolt"))

        config.ensure_directories()

        assert (temp_dir / "a" / "b").is_dir()

    def test_invalid_port(self) -> None:
        """Test that an out-of-range port raises validation error."""
        with pytest.raises(ValueError):
            ServerConfig(port=70000)

    def test_invalid_sync_mode(self) -> None:
        """Test that unknown sync modes are rejected."""
        with pytest.raises(ValueError):
            StorageConfig(sync_mode="fdatasync")  # type: ignore[arg-type]

    def test_empty_bucket_rejected(self) -> None:
        """A bucket name is required."""
        with pytest.raises(ValueError):
            StorageConfig(bucket="")

    def test_lock_timeout_may_wait_forever(self) -> None:
        """A lock timeout of None means wait forever."""
        assert StorageConfig(lock_timeout_seconds=None).lock_timeout_seconds is None


@pytest.mark.unit
class TestConfigSingleton:
    """Tests for get_config singleton."""

    def test_get_config_returns_same_instance(self) -> None:
        """Test that get_config returns the same instance."""
        assert get_config() is get_config()
