from typing import List

from fastapi import APIRouter, Depends, HTTPException

from provisioner.api.container import get_platform_client, get_project_name
from provisioner.api.schemas.manifests import ApplicationResponse, DomainResponse
from provisioner.core.errors import RemoteCallError

router = APIRouter(prefix="/applications", tags=["applications"])


@router.get("", response_model=List[ApplicationResponse])
def list_applications(
    platform=Depends(get_platform_client),
    project_name: str = Depends(get_project_name),
):
    """Applications in the shared project, with their domains."""
    try:
        project = platform.find_project_by_name(project_name)
        if project is None:
            return []

        environment = platform.get_project(project.project_id).default_environment
        if environment is None:
            return []

        response = []
        for app in environment.applications:
            domains = platform.list_domains(app.application_id)
            response.append(ApplicationResponse(
                application_id=app.application_id,
                name=app.name,
                source_type=app.source_type,
                cpu_limit=app.cpu_limit,
                memory_limit=app.memory_limit,
                status=app.application_status,
                domains=[
                    DomainResponse(domain_id=d.domain_id, host=d.host, port=d.port, https=d.https)
                    for d in domains
                ],
            ))
        return response

    except RemoteCallError as e:
        raise HTTPException(status_code=502, detail=str(e))
