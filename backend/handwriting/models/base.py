# handwriting/models/base.py
"""
Shared base for replica records.

Records travel as camelCase JSON (``userId``, ``createdAt``, ...) and are used
as snake_case attributes in Python; both names are accepted on input.
Timestamps are integer milliseconds since the epoch, as on the wire.
"""
import time
import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_id() -> str:
    return str(uuid.uuid4())


class Visibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class WireModel(BaseModel):
    """Base model: camelCase aliases, population by field name allowed."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    def to_wire(self) -> dict:
        """Serialize to the JSON shape the persistence service stores."""
        return self.model_dump(mode="json", by_alias=True)

    def clone(self):
        """Deep copy, so callers never hold references into the replica."""
        return self.model_copy(deep=True)
