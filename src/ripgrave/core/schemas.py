"""Pydantic schemas for the bury/seance/unbury pipeline.

These schemas define the durable data structures of ripgrave:
- BurialRecord: One line of the record log, one logical deletion
- RestoreMode: Where unburied content is put back

All schemas use Pydantic v2 for validation and serialization.
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_serializer, field_validator


class RestoreMode(str, Enum):
    """Destination policy for restoration.

    Attributes:
        ORIGINAL: Put content back at its recorded original path
        LOCAL: Put content back relative to the current directory
    """

    ORIGINAL = "original"
    LOCAL = "local"


class BurialRecord(BaseModel):
    """A single burial event as stored in the record log.

    Attributes:
        original_path: Absolute path of the source at deletion time
        graveyard_path: Absolute path of the content inside the graveyard
        timestamp: When the burial was recorded (timezone-aware)
    """

    original_path: Path
    graveyard_path: Path
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = {"frozen": True}

    @field_validator("original_path", "graveyard_path")
    @classmethod
    def validate_absolute(cls, v: Path) -> Path:
        """Ensure both recorded paths are absolute."""
        if not v.is_absolute():
            raise ValueError(f"Recorded paths must be absolute: {v}")
        return v

    @field_validator("timestamp")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_serializer("original_path", "graveyard_path")
    def serialize_paths(self, path: Path) -> str:
        """Serialize Path to string for JSON."""
        return str(path)
