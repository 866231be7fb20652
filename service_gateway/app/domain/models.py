"""
Request and response bodies of the gateway routes.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApiResponse(BaseModel):
    """Success envelope; failures are always a bare ``{"code": 1}``."""

    code: int = 0
    msg: Optional[str] = None
    data: Optional[Any] = None


class Health(BaseModel):
    ok: bool


class OssBucket(BaseModel):
    name: str


class OssObject(BaseModel):
    key: str
    size: Optional[int] = None
    e_tag: Optional[str] = Field(default=None, alias="eTag")


class OssData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bucket: OssBucket
    object_: OssObject = Field(alias="object")


class OssEventData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    oss: OssData
    event_name: Optional[str] = Field(default=None, alias="eventName")
    region: Optional[str] = None


class OssEventPayload(BaseModel):
    """CloudEvents envelope delivered by EventBridge for OSS object events."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    source: Optional[str] = None
    type: Optional[str] = None
    subject: Optional[str] = None
    data: OssEventData


class RefreshObjectCachesPayload(BaseModel):
    """Body of the manual cache refresh route."""

    object_path: str = Field(min_length=1)
    object_type: str = "File"
    force: bool = False
    area: Optional[str] = None
