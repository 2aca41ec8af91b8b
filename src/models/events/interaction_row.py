"""
Interaction Row Schema

Pydantic schema for one data line of the durable interaction log, used
when the log is read back for inspection.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from core.clock import ms_to_datetime


class InteractionRow(BaseModel):
    """
    Validated data line of ButtonClicks.csv.

    Field names follow the CSV header (Index,Timestamp,ObjectName,SubButtonName).
    """

    index: int = Field(..., ge=1, description="1-based sequence index")
    timestamp: int = Field(..., ge=0, description="Unix epoch milliseconds")
    object_name: str = Field(..., description="Primary (main button) target, may be empty")
    sub_button_name: str = Field("", description="Secondary (sub-button) target, may be empty")

    @field_validator("object_name", "sub_button_name", mode="before")
    @classmethod
    def strip_line_endings(cls, v):
        """Drop stray carriage returns from files edited on Windows."""
        if isinstance(v, str):
            return v.rstrip("\r\n")
        return v

    class Config:
        frozen = True
        extra = "forbid"

    @classmethod
    def from_fields(cls, fields: list[str]) -> "InteractionRow":
        """Build from the four split CSV fields."""
        index, timestamp, object_name, sub_button_name = fields
        return cls(
            index=index,
            timestamp=timestamp,
            object_name=object_name,
            sub_button_name=sub_button_name,
        )

    @property
    def recorded_at(self) -> datetime:
        """Timestamp as an aware UTC datetime."""
        return ms_to_datetime(self.timestamp)

    def matches(self, record) -> bool:
        """Field-for-field comparison with an in-memory EventRecord."""
        return (
            self.index == record.sequence_index
            and self.timestamp == record.timestamp
            and self.object_name == record.primary_target
            and self.sub_button_name == record.secondary_target
        )
