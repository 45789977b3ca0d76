"""Application layer for the payment service.

Exports:
    - PaymentServer: Owns the store and the REST application for one process
    - main: Command-line entry point
"""

from expay.application.server import PaymentServer, load_config, main

__all__ = ["PaymentServer", "load_config", "main"]
