"""Uniform CRUD contract shared by every resource type.

A resource module supplies only its payload model, its path and the set of
operations the API actually backs. Calling an operation outside that set
raises UnimplementedError before any request is made.
"""

from typing import Any, ClassVar, Generic, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict

from lookerapi.errors import UnimplementedError
from lookerapi.http.engine import RequestEngine
from lookerapi.http.pagination import PaginatedList
from lookerapi.http.response import ApiResponse

ALL_OPERATIONS = frozenset({"list", "get", "create", "update", "delete"})


class LookerModel(BaseModel):
    """Base for wire entities. Unknown response fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Server-populated fields, never sent on create/update
    read_only_fields: ClassVar[frozenset[str]] = frozenset({"id", "can", "url"})


T = TypeVar("T", bound=LookerModel)


def segment(value: Any) -> str:
    """URL-quote one path segment (ids and names may contain '/')."""
    return quote(str(value), safe="")


class ResourceOps(Generic[T]):
    """CRUD operations for one resource type, built on the request engine."""

    path: ClassVar[str]
    model: ClassVar[type[LookerModel]]
    capabilities: ClassVar[frozenset[str]] = ALL_OPERATIONS
    update_method: ClassVar[str] = "PATCH"

    def __init__(self, engine: RequestEngine, page_size: int | None = None):
        self._engine = engine
        self._page_size = page_size

    @property
    def name(self) -> str:
        return type(self).__name__

    def supports(self, operation: str) -> bool:
        return operation in self.capabilities

    def _require(self, operation: str) -> None:
        if operation not in self.capabilities:
            raise UnimplementedError(self.name, operation)

    def _item_path(self, entity_id: Any) -> str:
        return f"{self.path}/{segment(entity_id)}"

    def iterate(self, page_size: int | None = None, **params: Any) -> PaginatedList[T]:
        """Lazy, single-use iterator over every entity."""
        self._require("list")
        return self._engine.paginate(
            self.path, self.model, params=params, page_size=page_size or self._page_size
        )

    async def list(self, page_size: int | None = None, **params: Any) -> ApiResponse[list[T]]:
        self._require("list")
        return await self._engine.list_all(
            self.path, self.model, params=params, page_size=page_size or self._page_size
        )

    async def get(self, entity_id: Any) -> ApiResponse[T]:
        self._require("get")
        return await self._engine.do("GET", self._item_path(entity_id), decode_into=self.model)

    async def create(self, entity: T) -> ApiResponse[T]:
        self._require("create")
        return await self._engine.do("POST", self.path, body=entity, decode_into=self.model)

    async def update(self, entity_id: Any, entity: T) -> ApiResponse[T]:
        self._require("update")
        return await self._engine.do(
            self.update_method, self._item_path(entity_id), body=entity, decode_into=self.model
        )

    async def delete(self, entity_id: Any) -> ApiResponse[None]:
        self._require("delete")
        return await self._engine.do("DELETE", self._item_path(entity_id))
