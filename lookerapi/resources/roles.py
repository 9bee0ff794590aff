"""Roles (4.0/roles) and role assignment to users and groups."""

from typing import ClassVar

from lookerapi.http.engine import RequestEngine
from lookerapi.http.response import ApiResponse
from lookerapi.resources.base import LookerModel, ResourceOps, segment
from lookerapi.resources.groups import Group
from lookerapi.resources.model_sets import ModelSet
from lookerapi.resources.permission_sets import PermissionSet
from lookerapi.resources.users import User


class Role(LookerModel):
    id: str | None = None
    name: str | None = None
    permission_set_id: str | None = None
    model_set_id: str | None = None
    permission_set: PermissionSet | None = None
    model_set: ModelSet | None = None
    user_count: int | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {
        "permission_set",
        "model_set",
        "user_count",
    }


class Roles(ResourceOps[Role]):
    path = "4.0/roles"
    model = Role


class RoleMembers:
    """Users and groups holding a role.

    Looker replaces the whole membership list on PUT; there is no
    per-member add/remove.
    """

    def __init__(self, engine: RequestEngine):
        self._engine = engine

    def _path(self, role_id: str, kind: str) -> str:
        return f"{Roles.path}/{segment(role_id)}/{kind}"

    async def list_users(self, role_id: str) -> ApiResponse[list[User]]:
        return await self._engine.list_all(self._path(role_id, "users"), User)

    async def set_users(self, role_id: str, user_ids: list[str]) -> ApiResponse[list[User]]:
        return await self._engine.do(
            "PUT", self._path(role_id, "users"), body=list(user_ids), decode_into=list[User]
        )

    async def list_groups(self, role_id: str) -> ApiResponse[list[Group]]:
        return await self._engine.list_all(self._path(role_id, "groups"), Group)

    async def set_groups(self, role_id: str, group_ids: list[str]) -> ApiResponse[list[Group]]:
        return await self._engine.do(
            "PUT", self._path(role_id, "groups"), body=list(group_ids), decode_into=list[Group]
        )
