from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ValidationRequest(BaseModel):
    manifest: Dict[str, Any]
    compose: Optional[Dict[str, Any]] = None


class IssueResponse(BaseModel):
    path: str
    message: str


class ValidationResponse(BaseModel):
    valid: bool
    name: Optional[str] = None
    errors: List[IssueResponse]
    warnings: List[IssueResponse]


class DomainResponse(BaseModel):
    domain_id: str
    host: str
    port: Optional[int]
    https: bool


class ApplicationResponse(BaseModel):
    application_id: str
    name: str
    source_type: Optional[str]
    cpu_limit: Optional[str]
    memory_limit: Optional[str]
    status: Optional[str]
    domains: List[DomainResponse]
