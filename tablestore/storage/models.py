from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from azure.data.tables import EntityProperty
from pydantic import BaseModel, ConfigDict, Field


class TableRecord(BaseModel):
    """Base class for entities stored in a table.

    Subclass it and declare the entity's attributes as ordinary fields::

        class Customer(TableRecord):
            email: str
            visits: int = 0

    `etag` and `timestamp` are populated from service metadata on reads and
    are never written back as properties.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    partition_key: str = Field(alias="PartitionKey")
    row_key: str = Field(alias="RowKey")
    etag: str | None = Field(default=None, exclude=True)
    timestamp: datetime | None = Field(default=None, exclude=True)

    @property
    def key(self) -> dict[str, str]:
        return {"PartitionKey": self.partition_key, "RowKey": self.row_key}

    def to_entity(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    @classmethod
    def from_entity(cls, entity: Mapping[str, Any]):
        data = {k: (v.value if isinstance(v, EntityProperty) else v) for k, v in entity.items()}
        metadata = getattr(entity, "metadata", None) or {}
        data["etag"] = metadata.get("etag")
        data["timestamp"] = metadata.get("timestamp")
        return cls.model_validate(data)
