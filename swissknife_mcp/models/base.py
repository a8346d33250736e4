"""
Base Pydantic models for the swissknife MCP server.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class BaseFrameworkModel(BaseModel):
    """
    Base model for all server models with common configuration.
    """
    class Config:
        # Allow extra fields for maximum flexibility
        extra = "allow"
        # Use enum values instead of names
        use_enum_values = True
        # Validate assignment
        validate_assignment = True
        # Allow arbitrary types (backend clients, model classes)
        arbitrary_types_allowed = True
        # Populate by name for API compatibility (Pydantic V2)
        populate_by_name = True


class TimestampedModel(BaseFrameworkModel):
    """
    Base model with automatic timestamp tracking.
    """
    created_at: datetime = Field(default_factory=utcnow)


class ToolArguments(BaseFrameworkModel):
    """
    Base model for tool input schemas.

    Unlike other models, unknown argument names are rejected so that a
    misspelled parameter surfaces as an invalid-arguments failure instead
    of being silently ignored.
    """
    class Config:
        extra = "forbid"
