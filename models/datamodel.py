from abc import ABC
from collections.abc import Mapping
from enum import Enum
import json


def serialize(value):
    """Convert dataclass models, enums and containers into JSON-ready values."""
    if isinstance(value, DataModel):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {key: serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value


class DataModel(ABC):
    def to_dict(self):
        return {key: serialize(value) for key, value in self.__dict__.items()}

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**data)

    def to_json(self):
        return json.dumps(self.to_dict(), indent=2)

    def __str__(self):
        return self.to_json()
