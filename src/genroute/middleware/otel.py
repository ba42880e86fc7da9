"""OpenTelemetry tracing and metrics middleware.

Creates a server span covering the handler lifecycle (pre-execution through
post-execution) and HTTP server metrics with semantic conventions for each
request.

Install with: uv add "genroute[otel]"
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:
    from collections.abc import Callable

    from genroute.types import Handler, RequestEngine

try:
    from opentelemetry import metrics, trace
    from opentelemetry.metrics import Histogram, UpDownCounter
    from opentelemetry.propagate import extract
    from opentelemetry.trace import Span, SpanKind, Tracer, TracerProvider
except ImportError as e:
    msg = (
        "OpenTelemetry middleware requires the 'otel' extra. "
        "Install with: uv add 'genroute[otel]'"
    )
    raise ImportError(msg) from e

from genroute.router import http_route, path_params

_DURATION_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.075,
    0.1,
    0.25,
    0.5,
    0.75,
    1.0,
    2.5,
    5.0,
    7.5,
    10.0,
)


class _Instruments:
    __slots__ = ("active_requests", "duration", "tracer")

    def __init__(
        self, tracer: Tracer, duration: Histogram, active_requests: UpDownCounter
    ) -> None:
        self.tracer = tracer
        self.duration = duration
        self.active_requests = active_requests


class _ActiveRequest:
    """Span and metric state for one traced lifecycle."""

    __slots__ = ("attrs", "span", "start")

    def __init__(self, span: Span, attrs: dict[str, str], start: float) -> None:
        self.span = span
        self.attrs = attrs
        self.start = start


class _TracedHandler:
    """Wraps a Handler so its whole lifecycle runs inside a server span.

    pre_execution only marks the wrapper as started. execution then runs the
    wrapped handler's pre-execution, execution and post-execution under the
    span, so a started span is always ended before execution returns or raises.
    """

    __slots__ = ("_handler", "_instruments", "_traced")

    def __init__(
        self, handler: Handler, instruments: _Instruments, *, traced: bool = False
    ) -> None:
        self._handler = handler
        self._instruments = instruments
        self._traced = traced

    def set_path_params(self, path_params: dict[str, str]) -> Handler:
        return _TracedHandler(
            self._handler.set_path_params(path_params), self._instruments
        )

    def pre_execution(self, engine: RequestEngine) -> Handler:
        return _TracedHandler(self._handler, self._instruments, traced=True)

    def execution(self, engine: RequestEngine) -> object:
        if not self._traced:  # lifecycle did not start through this wrapper
            return self._handler.execution(engine)
        request = self._start(engine)
        try:
            with trace.use_span(
                request.span,
                end_on_exit=False,
                record_exception=True,
                set_status_on_exception=True,
            ):
                handler = self._handler.pre_execution(engine)
                output = handler.execution(engine)
                output = handler.post_execution(engine, output)
        except Exception as e:
            self._finish(request, e)
            raise
        self._finish(request, None)
        return output

    def post_execution(self, engine: RequestEngine, output: object) -> object:
        if not self._traced:
            return self._handler.post_execution(engine, output)
        return output

    def _start(self, engine: RequestEngine) -> _ActiveRequest:
        headers = engine.get_headers()

        # Extract propagated context from request headers
        ctx = extract({k.lower(): v for k, v in headers.items()})

        # Read http.route from ContextVar (set by the router before middleware runs)
        route = http_route.get("")

        verb = engine.get_verb().upper()
        span_name = f"{verb} {route}" if route else verb

        # Span attributes (stable HTTP semantic conventions)
        attributes: dict[str, str] = {
            "http.request.method": verb,
            "url.path": engine.get_path(),
        }
        if route:
            attributes["http.route"] = route
        query = engine.get_query_params()
        if query:
            attributes["url.query"] = urlencode(query)
        for key, value in headers.items():
            if key.lower() == "user-agent":
                attributes["user_agent.original"] = value
        # below isn't part of semantic conventions but having path params is useful
        for key, value in path_params.get({}).items():
            attributes[f"http.route.param.{key}"] = value

        active_attrs: dict[str, str] = {"http.request.method": verb}
        if route:
            active_attrs["http.route"] = route

        self._instruments.active_requests.add(1, active_attrs)
        span = self._instruments.tracer.start_span(
            span_name,
            context=ctx,
            kind=SpanKind.SERVER,
            attributes=attributes,
        )
        return _ActiveRequest(span, active_attrs, time.perf_counter())

    def _finish(self, request: _ActiveRequest, error: Exception | None) -> None:
        duration = time.perf_counter() - request.start
        self._instruments.active_requests.add(-1, request.attrs)
        duration_attrs = dict(request.attrs)
        if error is not None:
            error_type = type(error).__qualname__
            request.span.set_attribute("error.type", error_type)
            duration_attrs["error.type"] = error_type
        self._instruments.duration.record(duration, duration_attrs)
        request.span.end()


def otel(
    *,
    tracer_provider: TracerProvider | None = None,
    meter_provider: metrics.MeterProvider | None = None,
) -> Callable[[Handler], Handler]:
    """Create OpenTelemetry tracing and metrics middleware.

    The wrapped handler's pre-execution, execution and post-execution all run
    within the wrapper's execution call, inside one server span. The span is
    ended before that call returns or raises; an exception is recorded on the
    span and re-raised unchanged. Middleware applied outside ``otel`` sees the
    wrapped lifecycle as a single execution, and if it never reaches that call
    no span is started.

    Extracts trace context from incoming request headers (e.g. ``traceparent``)
    for distributed tracing. Only depends on ``opentelemetry-api``; users bring
    their own SDK and exporters.

    Metrics emitted:
        - ``http.server.request.duration`` (histogram, seconds)
        - ``http.server.active_requests`` (up-down counter)

    Args:
        tracer_provider: Optional TracerProvider. If None, uses the global provider.
        meter_provider: Optional MeterProvider. If None, uses the global provider.

    Returns:
        Middleware function that wraps handlers with tracing and metrics.

    Example:
        root.use(otel())

        # With custom providers
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.metrics import MeterProvider
        root.use(otel(
            tracer_provider=TracerProvider(),
            meter_provider=MeterProvider(),
        ))
    """
    tracer = trace.get_tracer(
        "genroute",
        tracer_provider=tracer_provider,
    )
    meter = metrics.get_meter(
        "genroute",
        meter_provider=meter_provider,
    )
    duration_histogram = meter.create_histogram(
        "http.server.request.duration",
        unit="s",
        description="Duration of HTTP server requests.",
        explicit_bucket_boundaries_advisory=_DURATION_BUCKETS,
    )
    active_requests_counter = meter.create_up_down_counter(
        "http.server.active_requests",
        unit="{request}",
        description="Number of active HTTP server requests.",
    )
    instruments = _Instruments(tracer, duration_histogram, active_requests_counter)

    def middleware(handler: Handler) -> Handler:
        return _TracedHandler(handler, instruments)

    return middleware
