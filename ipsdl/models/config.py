"""
Pydantic model for board configuration.
Provides robust validation for all settings.
"""

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BoardVersion(str, Enum):
    """Supported Invision Power Services board versions."""

    IPS3 = "ips3"
    IPS4 = "ips4"


def to_board_id(name: str) -> str:
    """Converts a board name into the kebab-case ID used for cache file names."""
    words = re.findall(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+", name)
    return "-".join(w.lower() for w in words)


class BoardConfig(BaseModel):
    """A validated configuration model for one board."""

    name: str
    url: str
    version: BoardVersion = BoardVersion.IPS4
    username: str = ""
    password: str = ""

    # Pagination and download pacing, in milliseconds
    min_delay: int = 500
    max_delay: int = 2000

    cache_dir: Path = Field(..., repr=False)

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not to_board_id(v):
            raise ValueError("Board name must contain at least one letter or digit.")
        return v

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Requires an absolute http(s) URL and strips any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Board URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("min_delay", "max_delay")
    @classmethod
    def validate_delay(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Delays cannot be negative.")
        return v

    @model_validator(mode="after")
    def validate_delay_window(self) -> "BoardConfig":
        if self.min_delay > self.max_delay:
            raise ValueError(
                f"min_delay ({self.min_delay}) must not exceed max_delay ({self.max_delay})."
            )
        return self

    @property
    def board_id(self) -> str:
        return to_board_id(self.name)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @property
    def category_cache_path(self) -> Path:
        return self.cache_dir / f"{self.board_id}-categories.json"

    @property
    def file_cache_path(self) -> Path:
        return self.cache_dir / f"{self.board_id}-files.json"

    @property
    def cookie_path(self) -> Path:
        return self.cache_dir / f"{self.board_id}-cookies.pickle"

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in a board's INI section."""
        internal_fields = {"name", "cache_dir"}
        return {key for key in cls.model_fields if key not in internal_fields}
