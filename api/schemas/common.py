"""
Shared pieces of the HTTP API contract.

Every response uses the same envelope:

    {"success": true, "message": "...", "data": {...}}

Request and response bodies use camelCase on the wire (sessionName,
webhookUrl, jobId) while the Python side stays snake_case.
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from api.sanitize import sanitize_value

T = TypeVar("T")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SanitizedRequest(ApiModel):
    """Request body whose strings are sanitized before field validation runs."""

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> Any:
        return sanitize_value(data)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: T
