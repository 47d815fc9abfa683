# agentdocs/store.py
"""
Catalog store: the narrow query/mutation surface over the catalog tables.

Every method is one round trip on its own session and returns plain dicts
(datetimes as ISO-8601 strings), so nothing above this module touches ORM
objects or sessions. Driver errors are translated here:

- IntegrityError (duplicate slug)  -> errors.Conflict
- any other SQLAlchemyError        -> errors.UpstreamFailure
- patch of a missing id            -> errors.NotFound

No call is retried.
"""

import datetime
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agentdocs import db as dbmod
from agentdocs import errors
from agentdocs import monitoring
from agentdocs.models import (
    UseCase, Service, Snippet, VerificationRun, Payment, ApiUsage,
    UseCaseId, ServiceId, SnippetId, VerificationRunId,
)


def _to_dict(row) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for col in row.__table__.columns:
        value = getattr(row, col.name)
        if isinstance(value, datetime.datetime):
            value = value.isoformat() + "Z"
        out[col.name] = value
    return out


class CatalogStore:

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        # resolved per call so db.reconfigure() takes effect immediately
        session: Session = dbmod.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            monitoring.inc_store_error("conflict")
            raise errors.Conflict(
                f"Duplicate key rejected by store during {operation}",
                details={"operation": operation},
            ) from e
        except SQLAlchemyError as e:
            session.rollback()
            monitoring.inc_store_error("upstream")
            monitoring.logger.error("Catalog store call failed", extra={"operation": operation, "error": str(e)})
            raise errors.UpstreamFailure(
                f"Catalog store call {operation} failed",
                details={"operation": operation},
            ) from e
        finally:
            session.close()

    # --- generic helpers
    def _get(self, model, row_id: int) -> Optional[Dict[str, Any]]:
        with self._session(f"{model.__tablename__}:get") as s:
            row = s.get(model, row_id)
            return _to_dict(row) if row is not None else None

    def _by_slug(self, model, slug: str) -> Optional[Dict[str, Any]]:
        with self._session(f"{model.__tablename__}:by_slug") as s:
            row = s.execute(select(model).where(model.slug == slug)).scalars().first()
            return _to_dict(row) if row is not None else None

    def _where(self, model, *criteria, order_by=None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        stmt = select(model).where(*criteria).order_by(order_by if order_by is not None else model.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session(f"{model.__tablename__}:query") as s:
            return [_to_dict(r) for r in s.execute(stmt).scalars().all()]

    def _insert(self, model, fields: Dict[str, Any]) -> int:
        with self._session(f"{model.__tablename__}:insert") as s:
            row = model(**fields)
            s.add(row)
            s.flush()
            return row.id

    def _patch(self, model, row_id: int, fields: Dict[str, Any]) -> None:
        unknown = set(fields) - set(model.__table__.columns.keys())
        if unknown:
            raise errors.ValidationError(f"Unknown {model.__tablename__} fields: {sorted(unknown)}")
        with self._session(f"{model.__tablename__}:patch") as s:
            row = s.get(model, row_id)
            if row is None:
                raise errors.NotFound(f"{model.__tablename__} row {row_id} not found")
            for key, value in fields.items():
                setattr(row, key, value)

    # --- use cases
    def list_use_cases(self) -> List[Dict[str, Any]]:
        return self._where(UseCase)

    def get_use_case(self, use_case_id: UseCaseId) -> Optional[Dict[str, Any]]:
        return self._get(UseCase, use_case_id)

    def get_use_case_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._by_slug(UseCase, slug)

    def insert_use_case(self, fields: Dict[str, Any]) -> UseCaseId:
        return UseCaseId(self._insert(UseCase, fields))

    def patch_use_case(self, use_case_id: UseCaseId, fields: Dict[str, Any]) -> None:
        self._patch(UseCase, use_case_id, fields)

    # --- services
    def list_services(self) -> List[Dict[str, Any]]:
        return self._where(Service)

    def get_service(self, service_id: ServiceId) -> Optional[Dict[str, Any]]:
        return self._get(Service, service_id)

    def get_service_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._by_slug(Service, slug)

    def insert_service(self, fields: Dict[str, Any]) -> ServiceId:
        return ServiceId(self._insert(Service, fields))

    def patch_service(self, service_id: ServiceId, fields: Dict[str, Any]) -> None:
        self._patch(Service, service_id, fields)

    # --- snippets
    def get_snippet(self, snippet_id: SnippetId) -> Optional[Dict[str, Any]]:
        return self._get(Snippet, snippet_id)

    def snippets_by_use_case(self, use_case_id: UseCaseId) -> List[Dict[str, Any]]:
        return self._where(Snippet, Snippet.use_case_id == use_case_id)

    def snippets_by_service(self, service_id: ServiceId) -> List[Dict[str, Any]]:
        return self._where(Snippet, Snippet.service_id == service_id)

    def snippets_by_use_case_and_service(self, use_case_id: UseCaseId, service_id: ServiceId) -> List[Dict[str, Any]]:
        return self._where(Snippet, Snippet.use_case_id == use_case_id, Snippet.service_id == service_id)

    def recent_snippets(self, limit: int, status: Optional[str] = None) -> List[Dict[str, Any]]:
        criteria = [Snippet.verification_status == status] if status else []
        return self._where(Snippet, *criteria, order_by=Snippet.id.desc(), limit=limit)

    def insert_snippet(self, fields: Dict[str, Any]) -> SnippetId:
        return SnippetId(self._insert(Snippet, fields))

    def patch_snippet(self, snippet_id: SnippetId, fields: Dict[str, Any]) -> None:
        self._patch(Snippet, snippet_id, fields)

    # --- verification runs
    def get_verification_run(self, run_id: VerificationRunId) -> Optional[Dict[str, Any]]:
        return self._get(VerificationRun, run_id)

    def verification_runs_for_snippet(self, snippet_id: SnippetId) -> List[Dict[str, Any]]:
        return self._where(VerificationRun, VerificationRun.snippet_id == snippet_id, order_by=VerificationRun.id.desc())

    def insert_verification_run(self, fields: Dict[str, Any]) -> VerificationRunId:
        return VerificationRunId(self._insert(VerificationRun, fields))

    def patch_verification_run(self, run_id: VerificationRunId, fields: Dict[str, Any]) -> None:
        self._patch(VerificationRun, run_id, fields)

    # --- append-only logs
    def insert_payment(self, fields: Dict[str, Any]) -> int:
        return self._insert(Payment, fields)

    def list_payments(self, since: Optional[datetime.datetime] = None) -> List[Dict[str, Any]]:
        criteria = [Payment.created_at > since] if since is not None else []
        return self._where(Payment, *criteria)

    def insert_api_usage(self, fields: Dict[str, Any]) -> int:
        return self._insert(ApiUsage, fields)

    def api_usage_by_key(self, api_key: str) -> List[Dict[str, Any]]:
        return self._where(ApiUsage, ApiUsage.api_key == api_key, order_by=ApiUsage.id.desc())
