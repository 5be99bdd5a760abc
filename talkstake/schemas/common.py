from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel
from typing import Annotated

# Base-unit token amount. Sent as a decimal string so values past 2^53 survive
# JSON clients; numeric strings and plain integers are both accepted on input.
Amount = Annotated[int, PlainSerializer(str, return_type=str, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        from_attributes=True,
    )
