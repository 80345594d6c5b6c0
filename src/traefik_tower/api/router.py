"""Forward-auth endpoint and service routes."""

import logging
import time
from http import HTTPStatus

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from traefik_tower.auth import InboundRequest, VerificationError
from traefik_tower.auth.strategies import VerificationStrategy
from traefik_tower.telemetry import Tracing, record_verification, render_metrics

logger = logging.getLogger(__name__)

HEADER_X_CONSUMER_ID = "X-Consumer-Id"

FORWARD_AUTH_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

router = APIRouter()
debug_router = APIRouter()


@router.api_route("/", methods=FORWARD_AUTH_METHODS)
async def forward_auth(request: Request) -> Response:
    """Verify the proxied request and hand the consumer identity to Traefik.

    200 with ``X-Consumer-Id`` when verified, 401 when the caller could not
    be verified, 500 when verification could not be carried out. Failure
    details are logged, never returned.
    """
    strategy: VerificationStrategy = request.app.state.strategy
    tracing: Tracing = request.app.state.tracing
    started = time.perf_counter()

    inbound = InboundRequest.create(request.method, request.url.path, request.headers.raw)
    headers: dict[str, str] = {}

    with tracing.context() as trace:
        try:
            consumer_id = await strategy.verify(inbound, trace)
        except VerificationError as exc:
            status_code = exc.status_code
            if status_code == HTTPStatus.UNAUTHORIZED:
                logger.warning("Verification failed: %s", exc)
            else:
                logger.error("Verification error: %s", exc)
        except Exception:
            logger.exception("Unexpected error during verification")
            trace.ext_status(trace.parent_span, HTTPStatus.INTERNAL_SERVER_ERROR)
            status_code = HTTPStatus.INTERNAL_SERVER_ERROR
        else:
            status_code = HTTPStatus.OK
            headers[HEADER_X_CONSUMER_ID] = consumer_id

    response = _status_response(status_code, headers)
    took = time.perf_counter() - started
    record_verification(request.app.state.settings.auth_type.value, status_code, took)
    logger.info(
        '{"request-id": %s, "status": %d, "took": %.3fms}',
        trace.trace_id,
        status_code,
        took * 1000,
    )
    return response


@router.get("/health")
async def health() -> str:
    """Health check endpoint."""
    return ""


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    body, content_type = render_metrics()
    return Response(content=body, media_type=content_type)


@debug_router.api_route("/200", methods=FORWARD_AUTH_METHODS)
async def always_success(request: Request) -> PlainTextResponse:
    """Log the full request and accept it."""
    body = await request.body()
    header_lines = "".join(f"{name}: {value}\r\n" for name, value in request.headers.items())
    logger.info(
        "%s %s HTTP/%s\r\n%s\r\n%s",
        request.method,
        request.url,
        request.scope.get("http_version", "1.1"),
        header_lines,
        body.decode("utf-8", errors="replace"),
    )
    return PlainTextResponse("I am auth")


@debug_router.api_route("/404", methods=FORWARD_AUTH_METHODS)
async def always_fail() -> PlainTextResponse:
    """Reject every request."""
    return PlainTextResponse(HTTPStatus.NOT_FOUND.phrase, status_code=HTTPStatus.NOT_FOUND)


def _status_response(status_code: int, headers: dict[str, str]) -> JSONResponse:
    return JSONResponse(
        content=HTTPStatus(status_code).phrase,
        status_code=status_code,
        headers=headers,
    )
