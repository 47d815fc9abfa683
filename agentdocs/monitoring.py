# agentdocs/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from prometheus_client import (
    Counter, Histogram,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger.json import JsonFormatter

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "agentdocs", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            handler.setFormatter(JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "agentdocs_requests_total",
    "Total catalog API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "agentdocs_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

STORE_ERRORS = Counter(
    "agentdocs_store_errors_total",
    "Catalog store failures",
    ["kind"],
)

PAYWALL_CHALLENGES = Counter(
    "agentdocs_paywall_challenges_total",
    "402 Payment Required responses",
    ["resource"],
)

PAYMENTS_LOGGED = Counter(
    "agentdocs_payments_logged_total",
    "Payments recorded for premium content",
    ["resource"],
)

SNIPPETS_CREATED = Counter(
    "agentdocs_snippets_created_total",
    "Snippets ingested",
)

VERIFICATION_UPDATES = Counter(
    "agentdocs_verification_updates_total",
    "Snippet verification status updates",
    ["status"],
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def inc_store_error(kind: str):
    try:
        STORE_ERRORS.labels(kind=kind).inc()
    except Exception:
        pass


def inc_paywall_challenge(resource: str):
    try:
        PAYWALL_CHALLENGES.labels(resource=resource).inc()
    except Exception:
        pass


def inc_payment(resource: str):
    try:
        PAYMENTS_LOGGED.labels(resource=resource).inc()
    except Exception:
        pass


def inc_snippet_created():
    try:
        SNIPPETS_CREATED.inc()
    except Exception:
        pass


def inc_verification_update(status: str):
    try:
        VERIFICATION_UPDATES.labels(status=status).inc()
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
