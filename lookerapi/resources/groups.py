"""Groups (4.0/groups) and group membership (4.0/groups/{id}/users)."""

from typing import ClassVar

from lookerapi.http.engine import RequestEngine
from lookerapi.http.pagination import PaginatedList
from lookerapi.http.response import ApiResponse
from lookerapi.resources.base import LookerModel, ResourceOps, segment
from lookerapi.resources.users import User


class Group(LookerModel):
    id: str | None = None
    name: str | None = None
    can_add_to_content_metadata: bool | None = None
    contains_current_user: bool | None = None
    external_group_id: str | None = None
    externally_managed: bool | None = None
    include_by_default: bool | None = None
    user_count: int | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {
        "can_add_to_content_metadata",
        "contains_current_user",
        "external_group_id",
        "externally_managed",
        "include_by_default",
        "user_count",
    }


class Groups(ResourceOps[Group]):
    path = "4.0/groups"
    model = Group


class GroupMembers:
    """Users belonging to a group. Membership has no update operation."""

    path = "4.0/groups/{group_id}/users"

    def __init__(self, engine: RequestEngine, page_size: int | None = None):
        self._engine = engine
        self._page_size = page_size

    def _path(self, group_id: str) -> str:
        return self.path.format(group_id=segment(group_id))

    def iterate(self, group_id: str, page_size: int | None = None) -> PaginatedList[User]:
        return self._engine.paginate(self._path(group_id), User, page_size=page_size or self._page_size)

    async def list(self, group_id: str, page_size: int | None = None) -> ApiResponse[list[User]]:
        return await self._engine.list_all(self._path(group_id), User, page_size=page_size or self._page_size)

    async def add(self, group_id: str, user_id: str) -> ApiResponse[User]:
        return await self._engine.do("POST", self._path(group_id), body={"user_id": user_id}, decode_into=User)

    async def remove(self, group_id: str, user_id: str) -> ApiResponse[None]:
        """DELETE membership. A second remove surfaces NotFoundError."""
        return await self._engine.do("DELETE", f"{self._path(group_id)}/{segment(user_id)}")
