"""Milestone API schemas."""
from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# Identity and audit fields a client may echo back; dropped silently
STRIPPED_FIELDS = (
    "id",
    "createdAt",
    "updatedAt",
    "deletedAt",
    "createdBy",
    "updatedBy",
    "deletedBy",
)

# Computed from duration and the cascade; rejected if present
FORBIDDEN_FIELDS = ("startDate", "endDate", "start_date", "end_date")

# The only field that may be explicitly cleared
NULLABLE_FIELDS = ("completionDate", "completion_date")


class MilestoneUpdateRequest(BaseModel):
    """Partial milestone update. Only supplied fields are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = Field(default=None, max_length=255)
    duration: Optional[int] = Field(default=None, ge=1)
    completion_date: Optional[date] = None
    status: Optional[str] = Field(default=None, max_length=45)
    type: Optional[str] = Field(default=None, max_length=45)
    details: Optional[Dict[str, Any]] = None
    order: Optional[int] = None
    planned_text: Optional[str] = Field(default=None, max_length=512)
    active_text: Optional[str] = Field(default=None, max_length=512)
    completed_text: Optional[str] = Field(default=None, max_length=512)
    blocked_text: Optional[str] = Field(default=None, max_length=512)
    hidden: Optional[bool] = None

    @model_validator(mode="before")
    @classmethod
    def _strip_and_reject(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        forbidden = [key for key in FORBIDDEN_FIELDS if key in data]
        if forbidden:
            raise ValueError(f"{', '.join(forbidden)} cannot be set, it is computed")

        nulls = [
            key for key, value in data.items()
            if value is None and key not in NULLABLE_FIELDS and key not in STRIPPED_FIELDS
        ]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} may not be null")

        return {key: value for key, value in data.items() if key not in STRIPPED_FIELDS}

    def to_changes(self) -> Dict[str, Any]:
        """Supplied fields keyed by column name."""
        return self.model_dump(exclude_unset=True)


class MilestoneUpdateBody(BaseModel):
    """Request body envelope: ``{"param": {...}}``."""
    param: MilestoneUpdateRequest


class MilestoneResponse(BaseModel):
    """Persisted milestone, without soft-delete fields."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int
    timeline_id: int
    name: str
    description: Optional[str] = None
    type: str
    order: int
    duration: int
    start_date: date
    end_date: date
    completion_date: Optional[date] = None
    status: str
    hidden: bool
    details: Optional[Dict[str, Any]] = None
    planned_text: Optional[str] = None
    active_text: Optional[str] = None
    completed_text: Optional[str] = None
    blocked_text: Optional[str] = None
    created_by: int
    updated_by: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def render(cls, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        """JSON-ready camelCase dict for a milestone snapshot."""
        return cls.model_validate(snapshot).model_dump(by_alias=True, mode="json")
