"""
Configuration data models for navscm.

These models define the structure of .navscm.json and
~/.config/navscm/config.json files, with validation via Pydantic.
"""

import codecs
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DevEnvConfig(BaseModel):
    """
    NAV development environment (finsql) settings.

    Server and database are passed to every finsql invocation.
    """
    path: Optional[str] = Field(
        default=None,
        description="Full path to finsql.exe"
    )
    server: Optional[str] = Field(
        default=None,
        description="Database server host name"
    )
    database: Optional[str] = Field(
        default=None,
        description="Database (catalog) name"
    )
    code_page: str = Field(
        default="cp850",
        description="Encoding of files and output written by finsql"
    )
    temp_root: Optional[str] = Field(
        default=None,
        description="Parent directory for scratch directories (system temp if unset)"
    )

    @field_validator('code_page')
    @classmethod
    def validate_code_page(cls, v: str) -> str:
        """Reject encodings Python does not know."""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown code page '{v}'")
        return v


class SourceConfig(BaseModel):
    """
    Object table access.

    The bundled binding reads a SQLite database holding a copy of the
    NAV object table.
    """
    sqlite_path: Optional[str] = Field(
        default=None,
        description="SQLite database file containing the object table"
    )
    table: str = Field(
        default="Object",
        description="Name of the object table"
    )


class WorkingCopyConfig(BaseModel):
    """Location of exported object files."""
    path: str = Field(
        default="objects",
        description="Working copy root, relative to the project directory"
    )


class CacheConfig(BaseModel):
    """Location of the object cache."""
    path: str = Field(
        default=".navscm/cache.json",
        description="Cache file, relative to the project directory"
    )


class NavScmConfig(BaseModel):
    """
    Top-level navscm configuration.

    Loaded from defaults, user config, project config, and env vars.

    Example:
        >>> config = NavScmConfig(
        ...     devenv=DevEnvConfig(path="finsql.exe", server="sql-01", database="NAV"),
        ... )
        >>> config.devenv.code_page
        'cp850'
    """
    devenv: DevEnvConfig = Field(
        default_factory=DevEnvConfig,
        description="Development environment settings"
    )
    source: SourceConfig = Field(
        default_factory=SourceConfig,
        description="Object table access"
    )
    working_copy: WorkingCopyConfig = Field(
        default_factory=WorkingCopyConfig,
        description="Working copy settings"
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Object cache settings"
    )

    model_config = ConfigDict(
        extra="allow",  # Allow extra fields for forward compatibility
        validate_assignment=True,
    )
