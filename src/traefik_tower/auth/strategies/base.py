"""Shared verification flow."""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, TypeVar

import httpx
from opentelemetry.trace import Span
from pydantic import BaseModel

from traefik_tower.auth.errors import VerificationError
from traefik_tower.auth.models import ConsumerID, InboundRequest
from traefik_tower.client import HTTPClient
from traefik_tower.config import AuthType, Settings
from traefik_tower.telemetry import SpanState, TraceContext, TracingError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class VerificationStrategy(ABC):
    """One way of turning a bearer credential into a consumer identity.

    ``verify`` opens the parent span, delegates to ``_verify`` and records
    the outcome on the parent span. Subclasses raise ``UnauthorizedError``
    or ``InternalError``; nothing is retried.
    """

    auth_type: ClassVar[AuthType]

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    async def verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        """Verify the proxied request.

        Args:
            request: The request forwarded by the proxy.
            trace: This request's tracing context.

        Returns:
            The consumer identity for the X-Consumer-Id header.

        Raises:
            UnauthorizedError: The caller could not be verified.
            InternalError: A backend could not be reached or understood.
        """
        self._open_parent(request, trace)
        try:
            consumer_id = await self._verify(request, trace)
        except VerificationError as exc:
            trace.ext_status(trace.parent_span, exc.status_code)
            raise

        trace.ext_status(trace.parent_span, 200)
        return consumer_id

    @abstractmethod
    async def _verify(self, request: InboundRequest, trace: TraceContext) -> ConsumerID:
        """Strategy-specific verification."""

    # ------------------------------------------------------------------
    # Tracing helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _open_parent(request: InboundRequest, trace: TraceContext) -> None:
        try:
            span = trace.parent(request)
        except TracingError as exc:
            logger.error("tracer parent span: %s", exc)
            span = trace.parent_span
        trace.ext_url(span, request.method, request.path)

    @staticmethod
    def _start_child(trace: TraceContext, name: str) -> Span | None:
        try:
            return trace.child(name)
        except TracingError as exc:
            logger.error("tracer child span: %s", exc)
            return None

    @staticmethod
    def _end_child(trace: TraceContext) -> None:
        if trace.state is SpanState.CHILD_ACTIVE:
            trace.end_child()


class HTTPVerificationStrategy(VerificationStrategy):
    """Strategy that talks to its backends over HTTP."""

    def __init__(self, settings: Settings, client: HTTPClient) -> None:
        super().__init__(settings)
        self._client = client

    async def _call(
        self,
        trace: TraceContext,
        request: httpx.Request,
        response_model: type[ModelT],
    ) -> ModelT:
        """Send one backend call inside its own child span."""
        url = request.url
        span = self._start_child(trace, url.path)
        trace.ext_url(span, request.method, f"{url.scheme}://{url.netloc.decode('ascii')}{url.path}")
        if span is not None:
            try:
                trace.inject(request.headers)
            except TracingError as exc:
                logger.error("tracer inject span: %s", exc)

        try:
            status_code, body = await self._client.send(request, response_model)
            trace.ext_status(span, status_code)
        finally:
            self._end_child(trace)

        if self._settings.debug:
            logger.debug("%s: %r", response_model.__name__, body)
        return body
