"""FastAPI application exposing the checkout endpoint.

Every request except ``/health`` must carry ``Authorization: Bearer
<token>``.  Authentication runs as a dependency and the checkout body is only
decoded after it, so an unauthenticated caller gets 401 whatever they
sent.
"""

from __future__ import annotations

from typing import Optional

import pydantic
import structlog
from fastapi import Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.application.show_orders import ListOrdersHandler
from storefront.domain.exceptions import DomainException, UnauthenticatedError
from storefront.infrastructure.bootstrap import Container, build_container
from storefront.infrastructure.log_config import configure_logging
from storefront.infrastructure.web.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ErrorResponse,
    OrderListResponse,
    OrderSchema,
)

log = structlog.get_logger(__name__)

ERROR_STATUS_CODES: dict[type[DomainException], int] = {
    UnauthenticatedError: 401,
}


def get_container(request: Request) -> Container:
    return request.app.state.container


def describe_errors(errors: list[dict]) -> str:
    """Render the first validation error as ``Invalid request: <field> <msg>``."""
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        # the location of a decode error is a character offset, not a field
        where = ""
    else:
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "invalid value")
    return f"Invalid request: {where} {message}" if where else f"Invalid request: {message}"


def require_user(
    authorization: Optional[str] = Header(default=None),
    container: Container = Depends(get_container),
) -> str:
    """Resolve the bearer token to a verified user id."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise UnauthenticatedError()
    token = authorization[len("bearer "):].strip()
    user_id = container.identity_provider.resolve(token) if token else None
    if not user_id:
        raise UnauthenticatedError()
    return user_id


def create_app(container: Container | None = None) -> FastAPI:
    container = container or build_container()
    configure_logging(container.settings.log_level, container.settings.log_json)

    app = FastAPI(title="Storefront Checkout")
    app.state.container = container

    @app.exception_handler(DomainException)
    async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(type(exc), 400)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def body_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": describe_errors(exc.errors())})

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "payments": container.settings.payments_enabled}

    @app.post(
        "/checkout",
        response_model=CheckoutResponse,
        responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
        openapi_extra={
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": CheckoutRequest.model_json_schema()}},
            }
        },
    )
    async def checkout(
        request: Request,
        user_id: str = Depends(require_user),
        idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    ):
        try:
            body = CheckoutRequest.model_validate_json(await request.body())
        except pydantic.ValidationError as exc:
            return JSONResponse(status_code=400, content={"error": describe_errors(exc.errors())})

        handler = container.place_order_handler()
        outcome = await run_in_threadpool(
            handler.handle,
            user_id=user_id,
            item_specs=[item.to_spec() for item in body.items],
            coupon_code=body.coupon_code,
            idempotency_key=idempotency_key,
        )
        if not outcome.succeeded:
            return JSONResponse(status_code=400, content={"error": outcome.error_message})
        return CheckoutResponse(
            url=outcome.redirect_url,
            sessionId=outcome.session_id,
            order_id=outcome.order_id,
        )

    @app.get("/orders", response_model=OrderListResponse)
    def list_orders(user_id: str = Depends(require_user)):
        dtos = ListOrdersHandler(container.orders).handle(user_id)
        return OrderListResponse(
            orders=[OrderSchema.from_dto(dto) for dto in dtos],
            count=len(dtos),
        )

    return app
