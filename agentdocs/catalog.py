# agentdocs/catalog.py
import functools
import re
from typing import Any, Callable, Dict, List, Optional

from agentdocs import benchmarks
from agentdocs import errors
from agentdocs import monitoring
from agentdocs import schemas
from agentdocs import search as _search
from agentdocs.models import (
    STATUS_PASSED, STATUS_PENDING, SNIPPET_STATUSES, RUN_RUNNING, utcnow,
    SnippetId, UseCaseId, ServiceId, VerificationRunId,
)
from agentdocs.store import CatalogStore

DEFAULT_SNIPPET_LIMIT = 50


def display_name_from_slug(slug: str) -> str:
    """'new-use-case' -> 'New Use Case'. Only first letters change case."""
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), slug.replace("-", " "), flags=re.ASCII)


def _identity(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {"slug": row["slug"], "name": row["name"]}


def _counts(snippets: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        "snippet_count": len(snippets),
        "verified_count": sum(1 for s in snippets if s["verification_status"] == STATUS_PASSED),
    }


def _lookup(fetch: Callable[[int], Optional[Dict[str, Any]]]) -> Callable[[int], Optional[Dict[str, Any]]]:
    """Memoized join for one request. A dangling reference resolves to None."""
    return functools.lru_cache(maxsize=None)(fetch)


class CatalogService:
    """
    Composition layer over the catalog store.

    Reads join snippets to their use case and service in memory and tolerate
    dangling references (the row is skipped or its identity is None). Every
    other failure propagates unchanged; nothing is retried here.
    """

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store or CatalogStore()

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------
    def list_use_cases(self) -> List[Dict[str, Any]]:
        return [
            {**uc, **_counts(self.store.snippets_by_use_case(uc["id"]))}
            for uc in self.store.list_use_cases()
        ]

    def get_use_case_with_services(self, slug: str) -> Dict[str, Any]:
        """
        Use case plus one entry per service that has snippets for it, with
        averages over verified snippets and a recommendation label, ranked
        by average quality (best first).
        """
        use_case = self.store.get_use_case_by_slug(slug)
        if use_case is None:
            raise errors.NotFound(f"Use case '{slug}' not found")

        service_of = _lookup(self.store.get_service)
        groups: Dict[str, Dict[str, Any]] = {}
        for snippet in self.store.snippets_by_use_case(use_case["id"]):
            service = service_of(snippet["service_id"])
            if service is None:
                monitoring.logger.warning(
                    "Skipping snippet with dangling service reference",
                    extra={"snippet_id": snippet["id"], "service_id": snippet["service_id"]},
                )
                continue
            group = groups.setdefault(service["slug"], {"service": service, "snippets": []})
            group["snippets"].append(snippet)

        entries = [benchmarks.aggregate_service(g["service"], g["snippets"]) for g in groups.values()]
        return {**use_case, "services": benchmarks.rank_services(entries)}

    def get_benchmark_comparison(self, slug: str) -> Dict[str, Any]:
        """Premium comparison view of a use case."""
        use_case = self.get_use_case_with_services(slug)
        return {
            "use_case": {
                "slug": use_case["slug"],
                "name": use_case["name"],
                "description": use_case.get("description"),
            },
            "services": use_case["services"],
            "last_updated": utcnow().isoformat() + "Z",
        }

    def upsert_use_case(self, fields: Dict[str, Any]) -> UseCaseId:
        req = schemas.validate(schemas.UseCaseUpsert, fields)
        values = {"name": req.name, "description": req.description, "icon": req.icon}
        existing = self.store.get_use_case_by_slug(req.slug)
        if existing is not None:
            self.store.patch_use_case(existing["id"], values)
            return UseCaseId(existing["id"])
        return self.store.insert_use_case({"slug": req.slug, **values})

    # ------------------------------------------------------------------
    # Services
    # ------------------------------------------------------------------
    def list_services(self) -> List[Dict[str, Any]]:
        return [
            {**svc, **_counts(self.store.snippets_by_service(svc["id"]))}
            for svc in self.store.list_services()
        ]

    def get_service_with_snippets(self, slug: str) -> Dict[str, Any]:
        service = self.store.get_service_by_slug(slug)
        if service is None:
            raise errors.NotFound(f"Service '{slug}' not found")

        use_case_of = _lookup(self.store.get_use_case)
        by_use_case: Dict[str, List[Dict[str, Any]]] = {}
        for snippet in self.store.snippets_by_service(service["id"]):
            use_case = use_case_of(snippet["use_case_id"])
            if use_case is None:
                monitoring.logger.warning(
                    "Skipping snippet with dangling use case reference",
                    extra={"snippet_id": snippet["id"], "use_case_id": snippet["use_case_id"]},
                )
                continue
            by_use_case.setdefault(use_case["slug"], []).append({**snippet, "use_case": _identity(use_case)})

        return {**service, "snippets_by_use_case": by_use_case}

    def upsert_service(self, fields: Dict[str, Any]) -> ServiceId:
        req = schemas.validate(schemas.ServiceUpsert, fields)
        values = {"name": req.name, "website": req.website, "docs_url": req.docs_url, "logo_url": req.logo_url}
        existing = self.store.get_service_by_slug(req.slug)
        if existing is not None:
            self.store.patch_service(existing["id"], values)
            return ServiceId(existing["id"])
        return self.store.insert_service({"slug": req.slug, **values})

    # ------------------------------------------------------------------
    # Snippets
    # ------------------------------------------------------------------
    def list_by_use_case(self, use_case_slug: str, language: Optional[str] = None) -> List[Dict[str, Any]]:
        # Unknown slugs yield an empty list here, unlike get_use_case_with_services
        use_case = self.store.get_use_case_by_slug(use_case_slug)
        if use_case is None:
            return []

        snippets = self.store.snippets_by_use_case(use_case["id"])
        if language:
            snippets = [s for s in snippets if s["language"] == language]

        service_of = _lookup(self.store.get_service)
        return [
            {**s, "service": _identity(service_of(s["service_id"])), "use_case": _identity(use_case)}
            for s in snippets
        ]

    def _require_snippet(self, snippet_id: SnippetId) -> Dict[str, Any]:
        snippet = self.store.get_snippet(snippet_id)
        if snippet is None:
            raise errors.NotFound(f"Snippet {snippet_id} not found")
        return snippet

    def get_snippet_summary(self, snippet_id: SnippetId) -> Dict[str, Any]:
        """Every snippet field except the code, plus service/use case identity."""
        snippet = self._require_snippet(snippet_id)
        summary = {k: v for k, v in snippet.items() if k != "code"}
        summary["service"] = _identity(self.store.get_service(snippet["service_id"]))
        summary["use_case"] = _identity(self.store.get_use_case(snippet["use_case_id"]))
        return summary

    def get_snippet_full(self, snippet_id: SnippetId) -> Dict[str, Any]:
        """
        Premium view: code and benchmarks of a verified snippet.

        An unverified snippet yields the errors.not_verified() payload
        instead; it carries neither code nor benchmark values.
        """
        snippet = self._require_snippet(snippet_id)
        if snippet["verification_status"] != STATUS_PASSED:
            return errors.not_verified(snippet["verification_status"])

        return {
            "id": snippet["id"],
            "code": snippet["code"],
            "language": snippet["language"],
            "title": snippet["title"],
            "description": snippet["description"],
            "dependencies": snippet["dependencies"],
            "env_vars": snippet["env_vars"],
            "benchmarks": {
                "latency_ms": snippet["benchmark_latency_ms"],
                "cost_usd": snippet["benchmark_cost_usd"],
                "quality_score": snippet["benchmark_quality_score"],
            },
            "verified_at": snippet["verified_at"],
            "service": _identity(self.store.get_service(snippet["service_id"])),
            "use_case": _identity(self.store.get_use_case(snippet["use_case_id"])),
        }

    def _get_or_create_use_case(self, slug: str, name: Optional[str]) -> UseCaseId:
        existing = self.store.get_use_case_by_slug(slug)
        if existing is not None:
            return UseCaseId(existing["id"])
        monitoring.logger.info("Creating use case during snippet ingestion", extra={"slug": slug})
        return self.store.insert_use_case({"slug": slug, "name": name or display_name_from_slug(slug)})

    def _get_or_create_service(self, slug: str, name: Optional[str]) -> ServiceId:
        existing = self.store.get_service_by_slug(slug)
        if existing is not None:
            return ServiceId(existing["id"])
        monitoring.logger.info("Creating service during snippet ingestion", extra={"slug": slug})
        return self.store.insert_service({"slug": slug, "name": name or display_name_from_slug(slug)})

    def create_snippet(self, fields: Dict[str, Any]) -> SnippetId:
        """
        Insert a new pending snippet, creating its use case and service when
        their slugs are unknown. A concurrent creator of the same slug makes
        the second insert fail with errors.Conflict.
        """
        req = schemas.validate(schemas.SnippetCreate, fields)
        use_case_id = self._get_or_create_use_case(req.use_case_slug, req.use_case_name)
        service_id = self._get_or_create_service(req.service_slug, req.service_name)

        snippet_id = self.store.insert_snippet({
            "use_case_id": use_case_id,
            "service_id": service_id,
            "language": req.language,
            "title": req.title,
            "description": req.description,
            "code": req.code,
            "dependencies": req.dependencies,
            "env_vars": req.env_vars,
            "source_url": req.source_url,
            "verification_status": STATUS_PENDING,
            "version": req.version,
        })
        monitoring.inc_snippet_created()
        monitoring.logger.info("Snippet created", extra={"snippet_id": snippet_id, "use_case": req.use_case_slug, "service": req.service_slug})
        return snippet_id

    def update_verification_status(
        self,
        snippet_id: SnippetId,
        status: str,
        error: Optional[str] = None,
        latency_ms: Optional[float] = None,
        cost_usd: Optional[float] = None,
        quality_score: Optional[float] = None,
    ) -> None:
        """
        Overwrite the verification fields of a snippet. Omitted benchmark
        values are cleared, not kept; verified_at is set only for "passed".
        """
        req = schemas.validate(schemas.VerificationUpdate, {
            "status": status,
            "error": error,
            "latency_ms": latency_ms,
            "cost_usd": cost_usd,
            "quality_score": quality_score,
        })
        self.store.patch_snippet(snippet_id, {
            "verification_status": req.status,
            "verification_error": req.error,
            "verified_at": utcnow() if req.status == STATUS_PASSED else None,
            "benchmark_latency_ms": req.latency_ms,
            "benchmark_cost_usd": req.cost_usd,
            "benchmark_quality_score": req.quality_score,
        })
        monitoring.inc_verification_update(req.status)

    def list_snippets(self, limit: int = DEFAULT_SNIPPET_LIMIT, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Most recent first, with service and use case reduced to their slugs."""
        if limit < 1:
            raise errors.ValidationError("limit must be >= 1")
        if status is not None and status not in SNIPPET_STATUSES:
            raise errors.ValidationError(f"status must be one of {list(SNIPPET_STATUSES)}")

        service_of = _lookup(self.store.get_service)
        use_case_of = _lookup(self.store.get_use_case)
        out = []
        for s in self.store.recent_snippets(limit, status=status):
            service = service_of(s["service_id"])
            use_case = use_case_of(s["use_case_id"])
            out.append({
                **s,
                "service": service["slug"] if service else None,
                "use_case": use_case["slug"] if use_case else None,
            })
        return out

    def search(self, use_case_slug: str, query: Optional[str] = None,
               language: Optional[str] = None) -> List[Dict[str, Any]]:
        if not use_case_slug:
            raise errors.ValidationError("usecase query param required")
        return _search.search_snippets(self.list_by_use_case(use_case_slug, language), query)

    # ------------------------------------------------------------------
    # Verification run history
    # ------------------------------------------------------------------
    def start_verification_run(self, snippet_id: SnippetId, fields: Optional[Dict[str, Any]] = None) -> VerificationRunId:
        req = schemas.validate(schemas.VerificationRunStart, fields or {})
        self._require_snippet(snippet_id)
        return self.store.insert_verification_run({
            "snippet_id": snippet_id,
            "status": RUN_RUNNING,
            "started_at": utcnow(),
            "runner_id": req.runner_id,
        })

    def complete_verification_run(self, run_id: VerificationRunId, fields: Dict[str, Any]) -> None:
        """Close a running run. The snippet's own status is left untouched."""
        req = schemas.validate(schemas.VerificationRunComplete, fields)
        run = self.store.get_verification_run(run_id)
        if run is None:
            raise errors.NotFound(f"Verification run {run_id} not found")
        if run["status"] != RUN_RUNNING:
            raise errors.Conflict(f"Verification run {run_id} already completed with status '{run['status']}'")
        self.store.patch_verification_run(run_id, {
            "status": req.status,
            "completed_at": utcnow(),
            "stdout": req.stdout,
            "stderr": req.stderr,
            "exit_code": req.exit_code,
        })

    def list_verification_runs(self, snippet_id: SnippetId) -> List[Dict[str, Any]]:
        self._require_snippet(snippet_id)
        return self.store.verification_runs_for_snippet(snippet_id)
