"""FastAPI REST adapter for the payment service.

Provides CRUD endpoints for payment resources on top of any RecordStore.

Endpoints:
    GET    /v1/payments       - List payments
    POST   /v1/payments       - Create a payment
    GET    /v1/payments/{id}  - Fetch a payment
    PUT    /v1/payments/{id}  - Update an existing payment
    DELETE /v1/payments/{id}  - Delete a payment
    GET    /health            - Health check

Every response is JSON. Errors use the envelope ``{"code": ..., "message": ...}``.

Usage:
    from expay.adapters.inbound.rest_api import create_app

    app = create_app(engine.bucket("payment", Payment))
    # Run with: uvicorn module:app --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from expay import __version__
from expay.domain.entities import Payment
from expay.domain.errors import InvalidIdError, InvalidPaymentError, NotFoundError
from expay.infrastructure.logging import get_logger
from expay.infrastructure.metrics import MetricsRegistry, get_metrics
from expay.ports.inbound import RecordStore


logger = get_logger(__name__)

URL_PREFIX = "/v1/payments"


class ErrorResponse(BaseModel):
    """Returned when an error occurred."""

    code: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Error message")


class Links(BaseModel):
    """Links of a payment response."""

    self: str = Field("", description="Self link")


class PaymentResponse(BaseModel):
    """Envelope for a payment response."""

    data: list[Payment] = Field(default_factory=list, description="Payments")
    links: Links | None = Field(None, description="Response links")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


def error_response(message: str, code: int) -> JSONResponse:
    """Reply with a JSON formatted ErrorResponse and HTTP code."""
    return JSONResponse(
        status_code=code,
        content=ErrorResponse(code=code, message=message).model_dump(),
    )


def payment_response(
    payments: list[Payment],
    links: Links | None = None,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Reply with a PaymentResponse envelope, omitting empty members."""
    content: dict[str, Any] = {}
    if payments:
        content["data"] = [payment.model_dump(mode="json") for payment in payments]
    if links is not None:
        content["links"] = links.model_dump()
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _failure(error: Exception, operation: str) -> JSONResponse:
    """Map a store error to an error response."""
    if isinstance(error, (NotFoundError, InvalidIdError)):
        return error_response("item not found", 404)
    logger.error("payment_operation_failed", operation=operation, error=str(error))
    return error_response(str(error), 500)


def _parse_payment(body: bytes) -> Payment:
    """Decode and verify a payment request body.

    Raises:
        ValueError: If the body is not a valid payment.
    """
    try:
        payment = Payment.model_validate_json(body, strict=True)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise ValueError(f"{location}: {first['msg']}" if location else first["msg"]) from e
    payment.verify()
    return payment


def create_app(
    store: RecordStore[Payment],
    metrics: MetricsRegistry | None = None,
) -> FastAPI:
    """Create a FastAPI application serving payments from ``store``.

    Args:
        store: Record store holding payments.
        metrics: Optional metrics registry (defaults to the global one).

    Returns:
        A configured FastAPI application.
    """
    metrics = metrics or get_metrics()

    app = FastAPI(
        title="ExPay API",
        description="ExPay API provides a RESTful payment API",
        version="1.0.0",
    )

    @app.middleware("http")
    async def common_middleware(request: Request, call_next):
        """Mark every response as JSON and count it."""
        response = await call_next(request)
        response.headers["Content-Type"] = "application/json"
        metrics.http_requests_total.labels(
            method=request.method, status_code=str(response.status_code)
        ).inc()
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return error_response("api not found", 404)
        return error_response(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(str(exc.errors()[0]["msg"]), 400)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__)

    @app.get(
        URL_PREFIX,
        response_model=PaymentResponse,
        responses={500: {"model": ErrorResponse}},
        tags=["Payments"],
    )
    async def list_payments() -> JSONResponse:
        """List payments.

        This will show all available payments.
        """
        try:
            payments = await run_in_threadpool(_collect_payments, store)
        except Exception as e:
            return _failure(e, "list")
        return payment_response(payments, links=Links(self=URL_PREFIX))

    @app.post(
        URL_PREFIX,
        status_code=201,
        response_model=PaymentResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Payments"],
    )
    async def create_payment(request: Request) -> JSONResponse:
        """Create payment.

        This will create a new payment.
        """
        try:
            payment = _parse_payment(await request.body())
        except (ValueError, InvalidPaymentError) as e:
            return error_response(str(e), 400)

        try:
            record_id = await run_in_threadpool(store.create, payment)
        except Exception as e:
            return _failure(e, "create")

        payment.id = record_id
        logger.info("payment_created", payment_id=record_id)
        return payment_response(
            [payment],
            status_code=201,
            headers={"Location": f"{URL_PREFIX}/{record_id}"},
        )

    @app.get(
        URL_PREFIX + "/{payment_id}",
        response_model=PaymentResponse,
        responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        tags=["Payments"],
    )
    async def get_payment(payment_id: str) -> JSONResponse:
        """Fetch payment.

        This will show the payment with the ID.
        """
        try:
            payment = await run_in_threadpool(store.get, payment_id)
        except Exception as e:
            return _failure(e, "get")
        payment.id = payment_id
        return payment_response([payment])

    @app.put(
        URL_PREFIX + "/{payment_id}",
        response_model=PaymentResponse,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
        tags=["Payments"],
    )
    async def update_payment(payment_id: str, request: Request) -> JSONResponse:
        """Update payment.

        This will update the payment with the ID. The payment must exist:
        the store itself would happily upsert, so existence is checked here.
        """
        try:
            await run_in_threadpool(store.get, payment_id)
        except Exception as e:
            return _failure(e, "update")

        try:
            payment = _parse_payment(await request.body())
        except (ValueError, InvalidPaymentError) as e:
            return error_response(str(e), 400)
        payment.id = payment_id

        try:
            await run_in_threadpool(store.update, payment_id, payment)
        except Exception as e:
            return _failure(e, "update")
        return payment_response([payment])

    @app.delete(
        URL_PREFIX + "/{payment_id}",
        response_model=PaymentResponse,
        responses={500: {"model": ErrorResponse}},
        tags=["Payments"],
    )
    async def delete_payment(payment_id: str) -> JSONResponse:
        """Delete payment.

        This will delete the payment with the ID.
        """
        try:
            await run_in_threadpool(store.delete, payment_id)
        except Exception as e:
            return _failure(e, "delete")
        return payment_response([])

    return app


def _collect_payments(store: RecordStore[Payment]) -> list[Payment]:
    """Drain the store's iterator into a list, closing it on every path."""
    try:
        iterator = store.list()
    except NotFoundError:
        return []

    payments: list[Payment] = []
    with iterator:
        while iterator.has_next():
            payment_id, payment = iterator.scan()
            payment.id = payment_id
            payments.append(payment)
    return payments
