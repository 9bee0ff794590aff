"""LookML projects: 4.0/projects.

Creating or changing a project only works in the dev workspace, so these
calls normally go through the client returned by create_dev_connection().
The API has no delete endpoint for projects.
"""

from typing import ClassVar

from pydantic import Field

from lookerapi.http.response import ApiResponse
from lookerapi.resources.base import LookerModel, ResourceOps


class Project(LookerModel):
    id: str | None = None
    name: str | None = None
    uses_git: bool | None = None
    git_remote_url: str | None = None
    git_username: str | None = None
    git_password: str | None = Field(default=None, repr=False)
    git_production_branch_name: str | None = None
    use_git_cookie_auth: bool | None = None
    git_service_name: str | None = None
    git_application_server_http_port: int | None = None
    git_application_server_http_scheme: str | None = None
    pull_request_mode: str | None = None
    validation_required: bool | None = None
    git_release_mgmt_enabled: bool | None = None
    allow_warnings: bool | None = None
    is_example: bool | None = None
    dependency_status: str | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {
        "uses_git",
        "is_example",
        "dependency_status",
    }


class Projects(ResourceOps[Project]):
    path = "4.0/projects"
    model = Project
    capabilities = frozenset({"list", "get", "create", "update"})

    async def deploy_key(self, project_id: str) -> ApiResponse[str]:
        """Public half of the git deploy key (plain text)."""
        return await self._engine.do("GET", f"{self._item_path(project_id)}/git/deploy_key", decode_into=str)

    async def create_deploy_key(self, project_id: str) -> ApiResponse[str]:
        """Generate a new deploy key, replacing any existing one."""
        return await self._engine.do("POST", f"{self._item_path(project_id)}/git/deploy_key", decode_into=str)
