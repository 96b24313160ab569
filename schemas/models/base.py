"""
Shared base for the `users` and `otps` document models.

Documents keep their MongoDB ``_id`` as ``id``; ``to_mongo`` / ``from_mongo``
convert between model instances and the raw dicts pymongo reads and writes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema


class PyObjectId(ObjectId):
    """ObjectId accepted from BSON or a 24-char hex string, dumped as a string in JSON."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @classmethod
    def _validate(cls, v: Any) -> ObjectId:
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError(f"Invalid ObjectId: {v!r}")


class MongoBaseModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Dump for insert/replace: enums as their values, no ``_id`` until one exists."""
        data = self.model_dump(by_alias=True, exclude_none=False, mode="python")
        for key, value in list(data.items()):
            if isinstance(value, Enum):
                data[key] = value.value
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]):
        """Validate a raw document; ``None`` (a find miss) stays ``None``."""
        if data is None:
            return None
        return cls.model_validate(data)
