"""Common schema module."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case fields in Python, camelCase keys on ``model_dump(by_alias=True)``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
