"""Workspaces (4.0/workspaces). Read-only in the API."""

from lookerapi.resources.base import LookerModel, ResourceOps


class WorkspaceEntry(LookerModel):
    id: str | None = None
    projects: list[dict] | None = None


class Workspaces(ResourceOps[WorkspaceEntry]):
    path = "4.0/workspaces"
    model = WorkspaceEntry
    capabilities = frozenset({"list", "get"})
