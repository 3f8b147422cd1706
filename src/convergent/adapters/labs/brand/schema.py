"""Pydantic models describing Brand Lab payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

from convergent.adapters.labs._support import blank_to_none


class BrandLabBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BrandLabEnvelope(BrandLabBaseModel):
    """Common status/error fields present on every Brand Lab shape."""

    status: str | None = None
    error: str | None = None

    _normalize_status = field_validator("status", "error", mode="before")(blank_to_none)


class BrandLabV2Payload(BrandLabEnvelope):
    """Current shape: findings nested under ``findings``."""

    version: Literal[2]
    findings: dict[str, object]


class BrandLabLegacyPayload(BrandLabEnvelope):
    """Older shape: findings are top-level keys; kept as extras."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def findings(self) -> dict[str, object]:
        return dict(self.model_extra or {})
