# agentdocs/app.py
import os
import time
from typing import Optional, Dict, Any

# Load .env BEFORE any agentdocs imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request, Body, Query, Path
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, PlainTextResponse
from starlette.routing import Match

from agentdocs import auth as authmod
from agentdocs import db as dbmod
from agentdocs import errors
from agentdocs import monitoring
from agentdocs import paywall
from agentdocs.catalog import CatalogService, DEFAULT_SNIPPET_LIMIT
from agentdocs.models import STATUS_PASSED
from agentdocs.payments import PaymentLedger

API_NAME = "AgentDocs API"
API_VERSION = "0.1.0"
API_DOCS = "https://agentdocs.dev/docs"
API_KEY_HEADER = "x-api-key"
PAYER_HEADER = "x-payer-address"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Paths that bypass admin auth and rate limiting
UNLIMITED_PATHS = {"/health", "/metrics"}

# Row ids are signed 64-bit integers in the store
MAX_ID = 2**63 - 1
MAX_QUERY_LENGTH = 500

# Metrics label for requests that match no route
UNMATCHED_ENDPOINT = "<unmatched>"

STATUS_BY_ERROR = {
    errors.NotFound: 404,
    errors.ValidationError: 400,
    errors.Conflict: 409,
    errors.UpstreamFailure: 502,
}

app = FastAPI(title=API_NAME, version=API_VERSION)

# Initialize DB tables on startup
dbmod.init_db()

# instantiate services once
catalog = CatalogService()
ledger = PaymentLedger()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Payment", "X-API-Key", "X-Payer-Address"],
)


def _error(status_code: int, error_code: str, message: str, details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content = {"status": "error", "error_code": error_code, "message": message}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


# ---------------------------------------------------------------------------
# Admin auth + rate-limit middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def admin_auth_and_rate_limit_middleware(request: Request, call_next):
    path = request.url.path
    if path in UNLIMITED_PATHS or request.method == "OPTIONS":
        return await call_next(request)

    if path.startswith("/admin/") and not authmod.is_admin_authorized(request.headers.get("authorization")):
        return _error(401, "E_UNAUTHORIZED", "Unauthorized")

    client_key = request.client.host if request.client else "anonymous"
    allowed, remaining = authmod.check_rate_limit(client_key)
    if not allowed:
        resp = _error(429, "E_RATE_LIMIT", "Rate limit exceeded")
        resp.headers["Retry-After"] = "60"
        return resp

    return await call_next(request)


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
def _route_template(request: Request) -> str:
    """Label requests by route template so ids and slugs share one series."""
    for route in app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", UNMATCHED_ENDPOINT)
    return UNMATCHED_ENDPOINT


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = _route_template(request)
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------
@app.exception_handler(errors.CatalogError)
async def catalog_error_handler(request: Request, exc: errors.CatalogError):
    status_code = next((code for cls, code in STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
    if status_code >= 500:
        monitoring.logger.error("Catalog request failed", extra={"path": request.url.path, "error_code": exc.error_code})
    return _error(status_code, exc.error_code, exc.message, exc.details)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(loc) for loc in e["loc"]), "message": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]
    return _error(400, errors.E_VALIDATION, "Invalid request parameters", {"errors": details})


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------
def _public_snippet(snippet: Dict[str, Any]) -> Dict[str, Any]:
    """Metadata only: no code and no benchmark values (those are premium)."""
    return {
        "id": snippet["id"],
        "title": snippet["title"],
        "description": snippet.get("description"),
        "service": snippet.get("service"),
        "use_case": snippet.get("use_case"),
        "language": snippet["language"],
        "dependencies": snippet.get("dependencies"),
        "env_vars": snippet.get("env_vars"),
        "verified": snippet["verification_status"] == STATUS_PASSED,
        "verified_at": snippet.get("verified_at"),
        "has_benchmarks": any(
            snippet.get(k) is not None
            for k in ("benchmark_latency_ms", "benchmark_cost_usd", "benchmark_quality_score")
        ),
    }


@app.get("/")
def root():
    return {"name": API_NAME, "version": API_VERSION, "status": "ok", "docs": API_DOCS}


@app.get("/usecases")
def list_use_cases():
    return catalog.list_use_cases()


@app.get("/usecase/{slug}")
def get_use_case(slug: str):
    return catalog.get_use_case_with_services(slug)


@app.get("/services")
def list_services():
    return catalog.list_services()


@app.get("/service/{slug}")
def get_service(slug: str):
    service = catalog.get_service_with_snippets(slug)
    service["snippets_by_use_case"] = {
        uc: [_public_snippet(s) for s in snippets]
        for uc, snippets in service["snippets_by_use_case"].items()
    }
    return service


@app.get("/search")
def search_snippets(
    usecase: Optional[str] = Query(default=None),
    q: Optional[str] = Query(default=None, max_length=MAX_QUERY_LENGTH),
    lang: Optional[str] = Query(default=None),
):
    """
    GET /search?usecase=transcription&q=deepgram&lang=typescript
    Metadata of matching snippets; code is premium.
    """
    return catalog.search(usecase or "", query=q, language=lang)


@app.get("/snippet/{snippet_id}")
def get_snippet(snippet_id: int = Path(..., ge=1, le=MAX_ID)):
    return _public_snippet(catalog.get_snippet_summary(snippet_id))


# ---------------------------------------------------------------------------
# Premium endpoints (x402)
# ---------------------------------------------------------------------------
def _record_usage(request: Request, endpoint: str):
    """Usage log is best-effort: never fail the API if the write fails."""
    try:
        ledger.log_usage({
            "api_key": request.headers.get(API_KEY_HEADER),
            "payer_address": request.headers.get(PAYER_HEADER),
            "endpoint": endpoint,
        })
    except errors.CatalogError:
        monitoring.logger.exception("Usage logging failed", extra={"endpoint": endpoint})


@app.get("/verified/snippet/{snippet_id}")
def get_verified_snippet(request: Request, snippet_id: int = Path(..., ge=1, le=MAX_ID)):
    """
    GET /verified/snippet/{id}
    Full code + benchmarks of a verified snippet. Requires an X-Payment header.
    """
    resource = f"/verified/snippet/{snippet_id}"
    _record_usage(request, resource)

    payment = request.headers.get(paywall.PAYMENT_HEADER)
    if not paywall.accepts_payment(payment):
        monitoring.inc_paywall_challenge("snippet")
        return JSONResponse(status_code=402, content=paywall.payment_required(
            amount=paywall.SNIPPET_PRICE_USD,
            description="Verified code snippet with benchmarks",
            resource=resource,
        ))

    full = catalog.get_snippet_full(snippet_id)
    if errors.is_not_verified(full):
        return JSONResponse(status_code=400, content=full)

    ledger.log_payment({
        "snippet_id": snippet_id,
        "amount_usd": float(paywall.SNIPPET_PRICE_USD),
        "tx_hash": payment,
        "payer_address": request.headers.get(PAYER_HEADER),
        "endpoint": resource,
    })
    monitoring.inc_payment("snippet")
    return full


@app.get("/verified/benchmark/{usecase}")
def get_benchmark_comparison(usecase: str, request: Request):
    """
    GET /verified/benchmark/{usecase}
    Ranked service comparison with recommendations. Requires an X-Payment header.
    """
    resource = f"/verified/benchmark/{usecase}"
    _record_usage(request, resource)

    payment = request.headers.get(paywall.PAYMENT_HEADER)
    if not paywall.accepts_payment(payment):
        monitoring.inc_paywall_challenge("benchmark")
        return JSONResponse(status_code=402, content=paywall.payment_required(
            amount=paywall.BENCHMARK_PRICE_USD,
            description=f"Full benchmark comparison for {usecase}",
            resource=resource,
        ))

    comparison = catalog.get_benchmark_comparison(usecase)
    ledger.log_payment({
        "amount_usd": float(paywall.BENCHMARK_PRICE_USD),
        "tx_hash": payment,
        "payer_address": request.headers.get(PAYER_HEADER),
        "endpoint": resource,
    })
    monitoring.inc_payment("benchmark")
    return comparison


# ---------------------------------------------------------------------------
# Admin endpoints (Authorization: Bearer <ADMIN_API_KEY>)
# ---------------------------------------------------------------------------
@app.post("/admin/snippet")
def admin_create_snippet(payload: Dict[str, Any] = Body(...)):
    snippet_id = catalog.create_snippet(payload)
    return {"id": snippet_id, "status": "created"}


@app.get("/admin/snippets")
def admin_list_snippets(
    limit: int = Query(default=DEFAULT_SNIPPET_LIMIT, le=MAX_ID),
    status: Optional[str] = Query(default=None),
):
    return catalog.list_snippets(limit=limit, status=status)


@app.post("/admin/snippet/{snippet_id}/verification")
def admin_update_verification(snippet_id: int = Path(..., ge=1, le=MAX_ID), payload: Dict[str, Any] = Body(...)):
    """
    POST /admin/snippet/{id}/verification
    Body: {"status": "passed", "latency_ms": 850, "cost_usd": 0.0043, "quality_score": 94}
    Omitted benchmark values are cleared.
    """
    catalog.update_verification_status(
        snippet_id,
        status=payload.get("status"),
        error=payload.get("error"),
        latency_ms=payload.get("latency_ms"),
        cost_usd=payload.get("cost_usd"),
        quality_score=payload.get("quality_score"),
    )
    return {"id": snippet_id, "status": "updated"}


@app.post("/admin/snippet/{snippet_id}/runs")
def admin_start_run(snippet_id: int = Path(..., ge=1, le=MAX_ID), payload: Optional[Dict[str, Any]] = Body(default=None)):
    run_id = catalog.start_verification_run(snippet_id, payload)
    return {"id": run_id, "status": "running"}


@app.get("/admin/snippet/{snippet_id}/runs")
def admin_list_runs(snippet_id: int = Path(..., ge=1, le=MAX_ID)):
    return catalog.list_verification_runs(snippet_id)


@app.post("/admin/runs/{run_id}/complete")
def admin_complete_run(run_id: int = Path(..., ge=1, le=MAX_ID), payload: Dict[str, Any] = Body(...)):
    catalog.complete_verification_run(run_id, payload)
    return {"id": run_id, "status": "completed"}


@app.get("/admin/stats")
def admin_payment_stats():
    return ledger.payment_stats()


@app.get("/admin/usage")
def admin_usage(api_key: str = Query(..., min_length=1)):
    return ledger.usage_for_key(api_key)


@app.post("/admin/usecase")
def admin_upsert_use_case(payload: Dict[str, Any] = Body(...)):
    return {"id": catalog.upsert_use_case(payload), "status": "upserted"}


@app.post("/admin/service")
def admin_upsert_service(payload: Dict[str, Any] = Body(...)):
    return {"id": catalog.upsert_service(payload), "status": "upserted"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
