"""Shared pydantic base for every value object exposed on the wire."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ArtifactModel(BaseModel):
    """
    Immutable model serialized with camelCase keys.

    Attributes are snake_case in Python; ``model_dump(by_alias=True)``
    produces the camelCase shape consumed by the dashboard.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
