"""Prometheus instrumentation helpers for the FastAPI application."""

from __future__ import annotations

from typing import Callable, cast

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.openmetrics.exposition import generate_latest as generate_openmetrics
from prometheus_fastapi_instrumentator import Instrumentator, metrics

OPENMETRICS_MEDIA_TYPE = "application/openmetrics-text; version=1.0.0; charset=utf-8"

REQUEST_LATENCY_BUCKETS = (
    0.01,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    float("inf"),
)


class AppMetrics:
    """Application level collectors bound to one registry."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry
        self.auth_rejections = Counter(
            "claude_chat_auth_rejections",
            "Rejected initData admissions by reason.",
            labelnames=("reason",),
            registry=registry,
        )
        self.completion_tokens = Counter(
            "claude_chat_completion_tokens",
            "Tokens reported by the completion provider.",
            labelnames=("provider",),
            registry=registry,
        )
        self.completion_failures = Counter(
            "claude_chat_completion_failures",
            "Completion calls that ended with an error.",
            labelnames=("provider",),
            registry=registry,
        )


def setup_metrics(app: FastAPI) -> AppMetrics:
    """Attach Prometheus instrumentation and expose the /metrics endpoint.

    Each application gets its own registry so several apps can live in one
    process (the test suite builds one per test).
    """

    registry = CollectorRegistry(auto_describe=True)
    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
        excluded_handlers=[r"/metrics"],
        registry=registry,
    )
    instrumentator.add(
        metrics.default(
            should_only_respect_2xx_for_highr=True,
            registry=registry,
        )
    )
    instrumentator.add(_latency_with_request_id(registry))
    instrumentator.instrument(app)

    app_metrics = AppMetrics(registry)
    app.state.metrics = app_metrics
    _register_metrics_endpoint(app, registry)
    return app_metrics


def _latency_with_request_id(registry: CollectorRegistry) -> Callable[[metrics.Info], None]:
    """Record per-endpoint latency while storing request_id as exemplar."""

    latency_histogram = Histogram(
        "claude_chat_request_latency_seconds",
        "Latency distribution enriched with request_id exemplars.",
        labelnames=("handler", "method", "status"),
        buckets=REQUEST_LATENCY_BUCKETS,
        registry=registry,
    )

    def instrumentation(info: metrics.Info) -> None:
        request_id = getattr(info.request.state, "request_id", None)
        exemplar = {"request_id": request_id} if request_id else None
        labels = (info.modified_handler, info.method, info.modified_status)
        latency_histogram.labels(*labels).observe(info.modified_duration, exemplar=exemplar)

    return instrumentation


def _register_metrics_endpoint(app: FastAPI, registry: CollectorRegistry) -> None:
    """Expose /metrics in OpenMetrics format to preserve exemplars."""

    @app.get("/metrics", include_in_schema=False, tags=["observability"])
    async def metrics_endpoint() -> Response:
        generate = cast(Callable[[CollectorRegistry], bytes], generate_openmetrics)
        return Response(content=generate(registry), media_type=OPENMETRICS_MEDIA_TYPE)


__all__ = ["AppMetrics", "OPENMETRICS_MEDIA_TYPE", "setup_metrics"]
