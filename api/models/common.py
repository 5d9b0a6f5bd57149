"""Base model for camelCase JSON payloads"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Snake_case in Python, camelCase on the wire"""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)
