from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GraderScreenshots(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # data URI or public URL of the above-the-fold capture
    first_view: Optional[str] = None
    actions: List[str] = Field(default_factory=list)


class GraderInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    platform: Optional[str] = None
    html: str = ""
    screenshots: GraderScreenshots = Field(default_factory=GraderScreenshots)
