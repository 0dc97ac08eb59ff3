from fastapi import APIRouter, Depends

from provisioner.api.container import get_admission_gate
from provisioner.api.schemas.manifests import (
    IssueResponse,
    ValidationRequest,
    ValidationResponse,
)

router = APIRouter(prefix="/validate", tags=["validation"])


@router.post("", response_model=ValidationResponse)
def validate_manifest(
    request: ValidationRequest,
    gate=Depends(get_admission_gate),
):
    """
    Run the admission checks without touching the platform.

    Always answers 200; `valid` tells whether the manifest would be admitted.
    """
    decision = gate.review(request.manifest, request.compose)

    metadata = request.manifest.get("metadata")
    name = metadata.get("name") if isinstance(metadata, dict) else None

    return ValidationResponse(
        valid=decision.admitted,
        name=name if isinstance(name, str) else None,
        errors=[IssueResponse(path=i.path, message=i.message) for i in decision.errors],
        warnings=[IssueResponse(path=i.path, message=i.message) for i in decision.warnings],
    )
