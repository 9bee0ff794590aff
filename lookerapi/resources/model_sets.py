"""Model sets: 4.0/model_sets."""

from typing import ClassVar

from lookerapi.resources.base import LookerModel, ResourceOps


class ModelSet(LookerModel):
    id: str | None = None
    name: str | None = None
    built_in: bool | None = None
    all_access: bool | None = None
    models: set[str] | None = None

    read_only_fields: ClassVar[frozenset[str]] = LookerModel.read_only_fields | {"built_in", "all_access"}


class ModelSets(ResourceOps[ModelSet]):
    path = "4.0/model_sets"
    model = ModelSet
