"""Request and error bodies of the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DownloadRequest(BaseModel):
    # Free-form text; the first https link in it is used
    url: str = Field(default="", description="Text containing a media link")


class ErrorResponse(BaseModel):
    error: str
    kind: str | None = None
    message: str | None = None


class ServiceInfo(BaseModel):
    name: str
    version: str
    expires_in: str = Field(serialization_alias="expiresIn")
