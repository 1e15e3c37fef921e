"""Application configuration management using Pydantic Settings.

This module defines the `Settings` class, which loads defaults for a conversion
run from environment variables and a `.env` file: the global time offset, the
default timestamp encoding for mappings that do not name one, the CSV separator
used for output, the output format and logging level. Command line options
override these per run.

The `get_settings` function provides a cached, singleton instance of the
configuration.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict as _SettingsConfigDict

__all__ = ["OUTPUT_FORMATS", "Settings", "get_settings"]

OUTPUT_FORMATS = ("json", "csv", "oldcsv")


class Settings(BaseSettings):
    """Defines all application configuration parameters."""

    model_config = _SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Time offset applied to every start/end (after encoding conversion)
    TIME_OFFSET: Optional[str] = Field(
        default=None,
        description=(
            "Offset subtracted from every timestamp. Interpreted in TIME_OFFSET_FORMAT. "
            "Unset means no offset."
        ),
    )
    TIME_OFFSET_FORMAT: Optional[str] = Field(
        default=None,
        description=(
            "Encoding of TIME_OFFSET ('C', 'pythonic', 'javascript'). Unset means the "
            "offset is already epoch milliseconds."
        ),
    )

    # Mapping defaults
    DEFAULT_TIMESTAMP_FORMAT: str = Field(
        default="C",
        description="Timestamp encoding for mappings created from the command line",
    )

    # Output
    OUTPUT_FORMAT: str = Field(default="json", description="One of json | csv | oldcsv")
    CSV_SEPARATOR: str = Field(default=",", description="Delimiter for CSV output")
    OUTPUT_FILE: Optional[str] = Field(
        default=None,
        description="Output path (defaults to output.chronovis.<ext> by format)",
    )
    DIAGNOSTICS_FILE: Optional[str] = Field(
        default=None,
        description="Optional path to write the run's diagnostics as JSON",
    )

    @field_validator("OUTPUT_FORMAT", mode="before")
    @classmethod
    def normalize_output_format(cls, v: Any) -> str:
        """Lower-case and validate the output format name."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return "json"
        value = str(v).strip().lower()
        if value not in OUTPUT_FORMATS:
            raise ValueError(f"OUTPUT_FORMAT must be one of {', '.join(OUTPUT_FORMATS)}")
        return value

    @field_validator(
        "TIME_OFFSET",
        "TIME_OFFSET_FORMAT",
        "OUTPUT_FILE",
        "DIAGNOSTICS_FILE",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Optional[str]:
        """Trim whitespace and normalize blank -> None."""
        if v is None:
            return None
        trimmed = str(v).strip()
        return trimmed or None

    @field_validator("CSV_SEPARATOR", mode="before")
    @classmethod
    def default_separator(cls, v: Any) -> str:
        if v is None or v == "":
            return ","
        return str(v)


@lru_cache(maxsize=1)
def get_settings() -> Settings:  # pragma: no cover - trivial
    """Return a cached, singleton instance of the application settings."""
    return Settings()
