from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Viewport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    width: int = Field(1280, gt=0, le=10000)
    height: int = Field(800, gt=0, le=20000)
    is_mobile: bool = False


MOBILE_VIEWPORT = Viewport(width=375, height=812, is_mobile=True)


class CaptureRequest(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "url": "https://example-shop.com",
                "fullPage": True,
                "viewport": {"width": 375, "height": 812, "isMobile": True},
                "waitFor": 2000,
            }
        },
    )

    url: str
    full_page: bool = True
    viewport: Optional[Viewport] = None
    wait_for: Optional[int] = Field(None, ge=0, le=60000)


class CaptureMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    timestamp: int
    viewport: Viewport
    full_page: bool


class CaptureResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    url: Optional[str] = None
    local_path: Optional[str] = None
    metadata: Optional[CaptureMetadata] = None
    html: Optional[str] = Field(None, exclude=True)
    error: Optional[str] = None


class ScreenshotInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    filename: str
    url: str
    size: int
    created_at: str
    modified_at: Optional[str] = None


class ScreenshotListResponse(BaseModel):
    count: int
    screenshots: List[ScreenshotInfo]
