"""Shared schema helpers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class InitDataBody(BaseModel):
    """Base for JSON bodies that carry ``initData`` next to the payload.

    The admission gate reads ``initData`` itself; the field is declared here
    so it shows up in the OpenAPI schema.
    """

    init_data: str | None = Field(default=None, alias="initData")

    model_config = ConfigDict(populate_by_name=True)


class SuccessResponse(BaseModel):
    success: bool
