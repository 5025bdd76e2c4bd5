from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

project_numbers_resolved_total = Counter(
    "project_numbers_resolved_total",
    "Project number resolutions by department code and outcome",
    ["department_code", "outcome"],
)

project_number_conflicts_total = Counter(
    "project_number_conflicts_total",
    "Unique-constraint conflicts hit while resolving project numbers",
    ["reason"],
)


_INT_RE = re.compile(r"/\d+\b")
_PROJECT_NUMBER_RE = re.compile(r"/[A-Z]{2}\d{5}\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _normalize_route_template(path: str) -> str:
    return _PATH_PARAM_RE.sub("{id}", path)


def _sanitize_path(path: str) -> str:
    without_numbers = _PROJECT_NUMBER_RE.sub("/{id}", path)
    return _INT_RE.sub("/{id}", without_numbers)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None)
        if isinstance(path_format, str) and path_format:
            return _normalize_route_template(path_format)
        route_path = getattr(route, "path", None)
        if isinstance(route_path, str) and route_path:
            return _normalize_route_template(route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    status_str = str(status)
    http_requests_total.labels(method=method, path=path, status=status_str).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_project_number_resolved(department_code: str, outcome: str) -> None:
    project_numbers_resolved_total.labels(department_code=department_code, outcome=outcome).inc()


def observe_project_number_conflict(reason: str) -> None:
    project_number_conflicts_total.labels(reason=reason).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
