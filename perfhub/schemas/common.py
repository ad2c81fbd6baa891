from typing import Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Stored as ISO strings; older records may carry epoch milliseconds
Timestamp = Optional[Union[str, int, float]]


class CamelModel(BaseModel):
    """Wire models use the record store's camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecordModel(CamelModel):
    """Records may carry fields written by other clients; pass them through."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str


class Message(BaseModel):
    message: str
