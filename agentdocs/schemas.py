# agentdocs/schemas.py
"""
Request contracts for catalog mutations, validated once at the service edge.

Unknown keys are ignored, so a caller cannot smuggle fields the service
controls (e.g. a snippet's verification_status on create).
"""

from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from agentdocs import errors

SnippetStatus = Literal["pending", "passed", "failed"]

M = TypeVar("M", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class SnippetCreate(_Request):
    use_case_slug: str = Field(..., min_length=1, max_length=128)
    service_slug: str = Field(..., min_length=1, max_length=128)
    # display names; derived from the slug when omitted
    use_case_name: Optional[str] = Field(default=None, max_length=256)
    service_name: Optional[str] = Field(default=None, max_length=256)
    language: str = Field(..., min_length=1, max_length=64)
    title: str = Field(..., min_length=1, max_length=512)
    description: Optional[str] = None
    code: str = Field(..., min_length=1)
    dependencies: Optional[List[str]] = None
    env_vars: Optional[List[str]] = None
    source_url: Optional[str] = Field(default=None, max_length=512)
    version: str = Field(default="1.0.0", min_length=1, max_length=32)


class VerificationUpdate(_Request):
    status: SnippetStatus
    error: Optional[str] = None
    latency_ms: Optional[float] = Field(default=None, ge=0)
    cost_usd: Optional[float] = Field(default=None, ge=0)
    quality_score: Optional[float] = Field(default=None, ge=0, le=100)


class UseCaseUpsert(_Request):
    slug: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=256)
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=64)


class ServiceUpsert(_Request):
    slug: str = Field(..., min_length=1, max_length=128)
    name: str = Field(..., min_length=1, max_length=256)
    website: Optional[str] = Field(default=None, max_length=512)
    docs_url: Optional[str] = Field(default=None, max_length=512)
    logo_url: Optional[str] = Field(default=None, max_length=512)


class VerificationRunStart(_Request):
    runner_id: Optional[str] = Field(default=None, max_length=128)


class VerificationRunComplete(_Request):
    status: Literal["passed", "failed"]
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    exit_code: Optional[int] = None


class PaymentLog(_Request):
    snippet_id: Optional[int] = None
    amount_usd: float = Field(..., gt=0)
    tx_hash: Optional[str] = Field(default=None, max_length=256)
    payer_address: Optional[str] = Field(default=None, max_length=128)
    endpoint: str = Field(..., min_length=1, max_length=512)


class UsageLog(_Request):
    api_key: Optional[str] = Field(default=None, max_length=256)
    payer_address: Optional[str] = Field(default=None, max_length=128)
    endpoint: str = Field(..., min_length=1, max_length=512)


def validate(model_cls: Type[M], data: Optional[Dict[str, Any]]) -> M:
    """Parse `data` into `model_cls`, raising errors.ValidationError on bad input."""
    if not isinstance(data, dict):
        raise errors.ValidationError(f"{model_cls.__name__} payload must be a JSON object")
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise errors.ValidationError(
            f"Invalid {model_cls.__name__} payload",
            details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
        ) from e
