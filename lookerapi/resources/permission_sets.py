"""Permission sets: 4.0/permission_sets."""

from typing import ClassVar

from lookerapi.resources.base import LookerModel, ResourceOps


class PermissionSet(LookerModel):
    id: str | None = None
    name: str | None = None
    built_in: bool | None = None
    all_access: bool | None = None
    permissions: set[str] | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {"built_in", "all_access"}


class PermissionSets(ResourceOps[PermissionSet]):
    path = "4.0/permission_sets"
    model = PermissionSet
