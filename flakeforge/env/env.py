from typing import Callable, Dict, Literal, Union

from pydantic import BaseModel, Field, StrictInt, StrictStr

from flakeforge.snowflake.constants import (
    DEFAULT_EPOCH,
    MAX_DATACENTER_ID,
    MAX_WORKER_ID,
)

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    FLAKEFORGE_WORKER_ID: StrictInt | None = Field(default=None, ge=0, le=MAX_WORKER_ID)
    FLAKEFORGE_DATACENTER_ID: StrictInt | None = Field(
        default=None,
        ge=0,
        le=MAX_DATACENTER_ID,
    )
    FLAKEFORGE_EPOCH: StrictInt = Field(default=DEFAULT_EPOCH, ge=0)
    FLAKEFORGE_LOG_LEVEL: StrictStr = "info"
    FLAKEFORGE_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "FLAKEFORGE_WORKER_ID": int,
            "FLAKEFORGE_DATACENTER_ID": int,
            "FLAKEFORGE_EPOCH": int,
            "FLAKEFORGE_LOG_LEVEL": str,
            "FLAKEFORGE_LOG_OUTPUT": str,
        }
