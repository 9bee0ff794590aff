"""LookML model configurations: 4.0/lookml_models, keyed by model name."""

from typing import ClassVar

from lookerapi.resources.base import LookerModel, ResourceOps


class LookmlModel(LookerModel):
    name: str | None = None
    label: str | None = None
    project_name: str | None = None
    allowed_db_connection_names: list[str] | None = None
    unlimited_db_connections: bool | None = None
    has_content: bool | None = None
    explores: list[dict] | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {"has_content", "explores", "label"}


class LookmlModels(ResourceOps[LookmlModel]):
    path = "4.0/lookml_models"
    model = LookmlModel
