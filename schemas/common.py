"""
PantryPal Shared Schema Bases
camelCase on the wire, snake_case in Python
"""

from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Response schema read from ORM objects and serialized with camelCase keys"""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


class RequestModel(BaseModel):
    """Request body schema accepting camelCase (and snake_case) keys"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class MessageResponse(ApiModel):
    """Plain acknowledgement"""
    message: str
