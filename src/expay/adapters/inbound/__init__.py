"""Inbound adapters - driving side of the payment service.

Exports:
    - create_app: FastAPI application factory for the payment REST API
"""

from expay.adapters.inbound.rest_api import URL_PREFIX, create_app, error_response

__all__ = ["create_app", "error_response", "URL_PREFIX"]
