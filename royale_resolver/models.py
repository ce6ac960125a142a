from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional

# Fields are loose; shape and format checks happen in the service,
# which returns a per-field admission reason.


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StartRequest(_Request):
    round_id: Any = Field(default=None, alias="roundId")
    participant: Any = None


class GuessRequest(_Request):
    instance_id: Any = Field(default=None, alias="instanceId")
    credential: Optional[Any] = None
    guess: Any = None


class ClaimRequest(_Request):
    instance_id: Any = Field(default=None, alias="instanceId")
    credential: Optional[Any] = None
