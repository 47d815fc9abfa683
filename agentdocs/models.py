# agentdocs/models.py
import datetime
from typing import NewType

from sqlalchemy import (
    Column, Integer, String, DateTime, Text, Float, JSON, ForeignKey, Index,
)

from agentdocs.db import Base

UseCaseId = NewType("UseCaseId", int)
ServiceId = NewType("ServiceId", int)
SnippetId = NewType("SnippetId", int)
VerificationRunId = NewType("VerificationRunId", int)

# Snippet.verification_status
STATUS_PENDING = "pending"
STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
SNIPPET_STATUSES = (STATUS_PENDING, STATUS_PASSED, STATUS_FAILED)

# VerificationRun.status
RUN_RUNNING = "running"
RUN_STATUSES = (RUN_RUNNING, STATUS_PASSED, STATUS_FAILED)


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp (SQLite has no timezone support)."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class UseCase(Base):
    __tablename__ = "use_cases"

    id = Column(Integer, primary_key=True)
    slug = Column(String(128), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True)
    slug = Column(String(128), unique=True, index=True, nullable=False)
    name = Column(String(256), nullable=False)
    website = Column(String(512), nullable=True)
    docs_url = Column(String(512), nullable=True)
    logo_url = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Snippet(Base):
    __tablename__ = "snippets"
    __table_args__ = (
        Index("ix_snippets_use_case_service", "use_case_id", "service_id"),
    )

    id = Column(Integer, primary_key=True)
    use_case_id = Column(Integer, ForeignKey("use_cases.id"), index=True, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"), index=True, nullable=False)
    language = Column(String(64), index=True, nullable=False)
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=True)
    code = Column(Text, nullable=False)
    dependencies = Column(JSON, nullable=True)  # ["@deepgram/sdk@3.0.0"]
    env_vars = Column(JSON, nullable=True)  # ["DEEPGRAM_API_KEY"]

    verification_status = Column(String(16), index=True, nullable=False, default=STATUS_PENDING)
    verified_at = Column(DateTime, nullable=True)
    verification_error = Column(Text, nullable=True)

    # nullable until verified
    benchmark_latency_ms = Column(Float, nullable=True)
    benchmark_cost_usd = Column(Float, nullable=True)
    benchmark_quality_score = Column(Float, nullable=True)  # 0-100

    version = Column(String(32), nullable=True)
    source_url = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class VerificationRun(Base):
    __tablename__ = "verification_runs"

    id = Column(Integer, primary_key=True)
    snippet_id = Column(Integer, ForeignKey("snippets.id"), index=True, nullable=False)
    status = Column(String(16), nullable=False, default=RUN_RUNNING)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    runner_id = Column(String(128), nullable=True)
    stdout = Column(Text, nullable=True)
    stderr = Column(Text, nullable=True)
    exit_code = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Payment(Base):
    """Append-only payment log; rows are never updated or deleted."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    snippet_id = Column(Integer, ForeignKey("snippets.id"), nullable=True)
    amount_usd = Column(Float, nullable=False)
    tx_hash = Column(String(256), nullable=True)
    payer_address = Column(String(128), nullable=True)
    endpoint = Column(String(512), nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)


class ApiUsage(Base):
    """Append-only request log."""
    __tablename__ = "api_usage"

    id = Column(Integer, primary_key=True)
    api_key = Column(String(256), index=True, nullable=True)
    payer_address = Column(String(128), nullable=True)
    endpoint = Column(String(512), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
