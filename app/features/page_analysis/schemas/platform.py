from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

PlatformName = Literal["cafe24", "imweb", "unknown"]


class PlatformDetection(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    platform: PlatformName = "unknown"
    confidence: float = Field(default=0.0, ge=0, le=1)
    signals: List[str] = Field(default_factory=list)
