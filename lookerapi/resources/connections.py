"""Database connections: 4.0/connections, keyed by connection name."""

from typing import ClassVar

from pydantic import Field

from lookerapi.resources.base import LookerModel, ResourceOps


class DBConnection(LookerModel):
    name: str | None = None
    dialect_name: str | None = None
    host: str | None = None
    port: str | int | None = None
    database: str | None = None
    username: str | None = None
    # Write-only; the API never returns it
    password: str | None = Field(default=None, repr=False)
    certificate: str | None = Field(default=None, repr=False)
    file_type: str | None = None
    schema_: str | None = Field(default=None, alias="schema")
    tmp_db_name: str | None = None
    jdbc_additional_params: str | None = None
    max_connections: int | None = None
    pool_timeout: int | None = None
    ssl: bool | None = None
    verify_ssl: bool | None = None
    uses_oauth: bool | None = None
    created_at: str | None = None
    user_id: str | None = None
    example: bool | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {
        "created_at",
        "user_id",
        "example",
        "uses_oauth",
    }


class Connections(ResourceOps[DBConnection]):
    path = "4.0/connections"
    model = DBConnection
