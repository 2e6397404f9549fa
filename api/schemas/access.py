"""Pydantic schemas for the /api/ip access endpoints."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from api.schemas.common import ApiModel, SanitizedRequest
from models.enums import AccessStatus


class AccessRequest(SanitizedRequest):
    """Body for POST /api/ip/request. Without `ip`, the caller's own address is used."""

    ip: Optional[str] = Field(None, max_length=64)
    note: Optional[str] = Field(None, max_length=1000)


class AccessStatusUpdate(ApiModel):
    status: AccessStatus


class AccessRequested(ApiModel):
    ip: str
    status: str


class AccessEntryOut(ApiModel):
    id: UUID
    ip: str
    status: str
    note: Optional[str] = None
    requested_at: datetime
    approved_at: Optional[datetime] = None

    # read straight from the SQLAlchemy model's attributes
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
