"""Payment server - process entry point.

Wires the storage engine, the payment bucket and the REST API together and
runs them under uvicorn until SIGINT or SIGTERM.

Usage:
    expay --host 0.0.0.0 --port 8080 --storage storage.bolt

Every flag falls back to the EXPAY_* environment configuration.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from fastapi import FastAPI

from expay import __version__
from expay.adapters.inbound.rest_api import create_app
from expay.adapters.outbound.bucket import Bucket
from expay.adapters.outbound.storage_engine import StorageEngine
from expay.domain.entities import Payment
from expay.infrastructure.config import Config, get_config
from expay.infrastructure.logging import get_logger, setup_logging
from expay.infrastructure.metrics import MetricsRegistry, get_metrics, setup_metrics
from expay.infrastructure.tracing import setup_tracing


logger = get_logger(__name__)


class PaymentServer:
    """Owns the storage engine and the HTTP application for one process.

    Usage:
        with PaymentServer(config) as server:
            server.serve()

    ``start`` opens the store file and builds the application; ``stop``
    closes the store. ``serve`` blocks until uvicorn receives a shutdown
    signal and has drained in-flight requests.
    """

    def __init__(self, config: Config, metrics: MetricsRegistry | None = None) -> None:
        self._config = config
        self._metrics = metrics
        self._engine: StorageEngine | None = None
        self._payments: Bucket[Payment] | None = None
        self._app: FastAPI | None = None

    @property
    def config(self) -> Config:
        """Return the server configuration."""
        return self._config

    @property
    def engine(self) -> StorageEngine:
        """Return the storage engine (server must be started)."""
        if self._engine is None:
            raise RuntimeError("server not started")
        return self._engine

    @property
    def app(self) -> FastAPI:
        """Return the FastAPI application (server must be started)."""
        if self._app is None:
            raise RuntimeError("server not started")
        return self._app

    def start(self) -> None:
        """Open the store and build the REST application.

        Raises:
            StoreIOError: If the store file cannot be opened.
        """
        if self._engine is not None:
            return

        storage = self._config.storage
        self._config.ensure_directories()
        metrics = self._metrics or get_metrics()
        self._engine = StorageEngine.open(
            storage.path,
            lock_timeout=storage.lock_timeout_seconds,
            sync_mode=storage.sync_mode,
            metrics=metrics,
        )
        self._payments = self._engine.bucket(storage.bucket, Payment)
        self._app = create_app(self._payments, metrics=metrics)
        logger.info(
            "payment_server_started",
            storage=str(storage.path),
            bucket=storage.bucket,
        )

    def serve(self) -> None:
        """Serve HTTP until a shutdown signal arrives."""
        import uvicorn

        server_config = self._config.server
        uvicorn_config = uvicorn.Config(
            self.app,
            host=server_config.host,
            port=server_config.port,
            log_config=None,
            log_level=self._config.observability.log_level.lower(),
            timeout_graceful_shutdown=server_config.shutdown_timeout_seconds,
        )
        logger.info("listening", host=server_config.host, port=server_config.port)
        uvicorn.Server(uvicorn_config).run()
        logger.info("server_stopped")

    def stop(self) -> None:
        """Close the store. Safe to call more than once."""
        if self._engine is None:
            return
        engine, self._engine = self._engine, None
        self._payments = None
        self._app = None
        engine.close()
        logger.info("payment_server_stopped")

    def __enter__(self) -> PaymentServer:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="expay",
        description="ExPay payment API server",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--host", help="Address to listen on")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--storage", type=Path, help="Path of the store file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level",
    )
    return parser


def load_config(argv: Sequence[str] | None = None) -> Config:
    """Build the configuration from the environment and command-line flags."""
    args = build_parser().parse_args(argv)
    config = get_config().model_copy(deep=True)
    if args.host is not None:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.storage is not None:
        config.storage.path = args.storage
    if args.log_level is not None:
        config.observability.log_level = args.log_level
    return config


def main(argv: Sequence[str] | None = None) -> int:
    """Run the payment server."""
    config = load_config(argv)
    observability = config.observability
    setup_logging(level=observability.log_level, log_format=observability.log_format)

    metrics = None
    if config.server.metrics_port is not None:
        metrics = setup_metrics(port=config.server.metrics_port)
    if observability.otel_endpoint:
        setup_tracing(
            service_name=observability.otel_service_name,
            otlp_endpoint=observability.otel_endpoint,
        )

    with PaymentServer(config, metrics=metrics) as server:
        server.serve()
    return 0
