from __future__ import annotations

import re

from pydantic import BaseModel, field_validator

_SLUG_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class TemplateInput(BaseModel):
    id: str
    type: str
    source: str = ""
    uid: int = 0

    @field_validator("id", "type", mode="before")
    @classmethod
    def validate_not_empty(cls, v: object) -> str:
        v = "" if v is None else str(v).strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("type")
    @classmethod
    def singularise_type(cls, v: str) -> str:
        # The catalog lists "sections"/"pages"; templates are stored per item type
        if v in ("sections", "pages"):
            return v[:-1]
        return v


class PluginInstallInput(BaseModel):
    slug: str
    redux_pro: bool = False

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Slug not specified.")
        if not _SLUG_RE.match(v):
            raise ValueError(f"Invalid plugin slug: {v!r}")
        return v


class DeleteBlockInput(BaseModel):
    block_id: int


class ShareOutput(BaseModel):
    url: str


class ActivateOutput(BaseModel):
    left: int
