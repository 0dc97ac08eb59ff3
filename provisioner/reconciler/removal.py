# provisioner/reconciler/removal.py

import logging

from provisioner.core.errors import AmbiguityError, RemoteCallError
from provisioner.reconciler.results import ErrorKind, RemovalResult

logger = logging.getLogger(__name__)


class RemovalReconciler:
    """
    Idempotent delete of one application from the shared project.

    A missing project or application counts as already converged. The
    platform cascades domains and deployment history on delete.
    """

    def __init__(self, platform, project_name: str):
        self._platform = platform
        self.project_name = project_name

    def remove(self, app_name: str) -> RemovalResult:
        result = RemovalResult(success=False, app_name=app_name)

        try:
            self._remove(app_name, result)
        except AmbiguityError as e:
            logger.error(f"[removal] {app_name}: {e}")
            result.error = str(e)
            result.error_kind = ErrorKind.AMBIGUITY
        except RemoteCallError as e:
            logger.error(f"[removal] {app_name} failed: {e}")
            result.error = str(e)
            result.error_kind = ErrorKind.REMOTE

        return result

    def _remove(self, app_name: str, result: RemovalResult) -> None:
        project = self._platform.find_project_by_name(self.project_name)
        if project is None:
            logger.info(f"[removal] project '{self.project_name}' not found; {app_name} already absent")
            result.success = True
            result.already_absent = True
            return

        environment = self._platform.get_project(project.project_id).default_environment
        matches = environment.applications_named(app_name) if environment else []

        if len(matches) > 1:
            raise AmbiguityError(app_name, [app.application_id for app in matches])

        if not matches:
            logger.info(f"[removal] {app_name} already absent")
            result.success = True
            result.already_absent = True
            return

        application_id = matches[0].application_id
        result.application_id = application_id

        self._platform.delete_application(application_id)
        result.success = True

        logger.info(f"[removal] ✅ {app_name} ({application_id}) deleted")
