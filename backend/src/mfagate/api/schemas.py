"""Pydantic schemas for the MFA API."""

from __future__ import annotations

from typing import Any
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class StartRequest(BaseModel):
    """Body of ``POST /v1/mfa/start``."""

    model_config = ConfigDict(extra="ignore")

    password: Optional[str] = Field(default=None, repr=False)


class RespondRequest(BaseModel):
    """Body of ``POST /v1/mfa/respond``."""

    model_config = ConfigDict(extra="ignore")

    attempt_id: str = Field(min_length=1, max_length=64)
    form: dict[str, Any] = Field(default_factory=dict)


class MfaResponse(BaseModel):
    """Result of either phase."""

    status: str
    attempt_id: Optional[str] = None
    form: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    failure: Optional[str] = None
