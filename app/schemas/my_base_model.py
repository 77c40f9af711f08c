from typing import Any

from pydantic import BaseModel, ConfigDict
from sqlalchemy.engine.row import Row


class CustomBaseModel(BaseModel):
    """Custom base model for response schemas.
    - fields are serialized with their camelCase alias, and accept either name on input
    - from_record builds the schema from an ORM object, a Row or a dict
    """

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    @classmethod
    def from_record(cls, record: Any):
        if isinstance(record, Row):
            return cls(**record._asdict())
        elif isinstance(record, dict):
            return cls(**record)
        elif hasattr(record, "__table__"):
            return cls.model_validate(record)
        else:
            raise ValueError(f"Invalid record type: {type(record)}")
