"""
Data models for NAV objects.

Defines the object identity (type + ID), the identity trait shared by all
object representations, and the pydantic models for the database-backed and
file-backed views of an object.

Equality and ordering of every view are defined by the identity alone: a
database object and a file object with the same type and ID compare equal,
even if their names, timestamps or version lists differ. Drift is detected by
comparing `modified` explicitly, never through `==`.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import IntEnum
from pathlib import Path
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from navscm.core.exceptions import UnsupportedObjectError

OBJECT_FILE_SUFFIX = ".txt"
"""Extension of exported text objects; finsql picks the export format from it."""

_UNSAFE_NAME_CHARS = re.compile(r"[:?/\\]")
_CACHE_KEY_PATTERN = re.compile(r"^(\d+)\.(\d+)$")


class NavObjectType(IntEnum):
    """Object types as stored in the `Type` column of the NAV object table."""

    TABLE_DATA = 0
    TABLE = 1
    FORM = 2
    REPORT = 3
    DATAPORT = 4
    CODEUNIT = 5
    XML_PORT = 6
    MENU_SUITE = 7
    PAGE = 8
    QUERY = 9

    @property
    def label(self) -> str:
        """Spelling used by the development environment (filters, file headers)."""
        return _TYPE_LABELS[self]

    @property
    def is_supported(self) -> bool:
        return self in SUPPORTED_TYPES

    @classmethod
    def from_label(cls, word: str) -> NavObjectType:
        """
        Map a type word such as "Codeunit" or "XMLport" to its enum member.

        Raises:
            ValueError: If the word names no known object type
        """
        lowered = word.lower()
        for member, label in _TYPE_LABELS.items():
            if label.lower() == lowered:
                return member
        raise ValueError(f"Unknown object type '{word}'")


_TYPE_LABELS: dict[NavObjectType, str] = {
    NavObjectType.TABLE_DATA: "TableData",
    NavObjectType.TABLE: "Table",
    NavObjectType.FORM: "Form",
    NavObjectType.REPORT: "Report",
    NavObjectType.DATAPORT: "Dataport",
    NavObjectType.CODEUNIT: "Codeunit",
    NavObjectType.XML_PORT: "XmlPort",
    NavObjectType.MENU_SUITE: "MenuSuite",
    NavObjectType.PAGE: "Page",
    NavObjectType.QUERY: "Query",
}

SUPPORTED_TYPES: frozenset[NavObjectType] = frozenset(
    {
        NavObjectType.TABLE,
        NavObjectType.REPORT,
        NavObjectType.CODEUNIT,
        NavObjectType.XML_PORT,
        NavObjectType.MENU_SUITE,
        NavObjectType.PAGE,
        NavObjectType.QUERY,
    }
)


def _ensure_supported(value: NavObjectType) -> NavObjectType:
    if value not in SUPPORTED_TYPES:
        raise ValueError(f"object type {value.label} ({int(value)}) is not supported")
    return value


SupportedType = Annotated[NavObjectType, AfterValidator(_ensure_supported)]


def sanitize_name(name: str) -> str:
    """Replace characters that are not file system compatible with underscores."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


@dataclass(frozen=True, order=True)
class ObjectKey:
    """
    Identity of a NAV object: its type and numeric ID.

    Keys order by type ordinal first, then by ID. Comparing a key with
    anything that is not a key raises TypeError.

    Example:
        >>> key = ObjectKey(NavObjectType.CODEUNIT, 99997)
        >>> key.cache_key
        '5.99997'
        >>> ObjectKey.parse("5.99997") == key
        True
    """

    type: NavObjectType
    id: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", NavObjectType(self.type))
        if self.id < 0:
            raise ValueError(f"Object IDs must not be negative, got {self.id}")

    @property
    def cache_key(self) -> str:
        return f"{int(self.type)}.{self.id}"

    @property
    def filter_expression(self) -> str:
        """Record filter selecting this object in finsql commands."""
        return f"Type={self.type.label};ID={self.id}"

    @classmethod
    def parse(cls, cache_key: str) -> ObjectKey:
        """
        Parse a cache key of the form "type.id".

        Raises:
            ValueError: If the key is malformed or names an unsupported type
        """
        match = _CACHE_KEY_PATTERN.match(cache_key)
        if not match:
            raise ValueError(f"Invalid cache key '{cache_key}'")
        ordinal, object_id = int(match.group(1)), int(match.group(2))
        try:
            object_type = NavObjectType(ordinal)
        except ValueError:
            raise ValueError(f"Cache key '{cache_key}' has an unknown object type") from None
        if not object_type.is_supported:
            raise ValueError(f"Cache key '{cache_key}' has an unsupported object type")
        return cls(object_type, object_id)

    def __str__(self) -> str:
        return f"{self.type.label} {self.id}"


@functools.total_ordering
class ObjectIdentity:
    """
    Behaviour shared by every representation of a NAV object.

    Classes using this trait provide `type`, `id`, `name`, `modified_date`,
    `modified_time` and `version_list` attributes. Everything else, including
    equality and ordering, is derived from those.
    """

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.type, self.id)  # type: ignore[attr-defined]

    @property
    def cache_key(self) -> str:
        return self.key.cache_key

    @property
    def modified(self) -> datetime:
        """Modification date and time of day combined into one instant."""
        return datetime.combine(self.modified_date, self.modified_time)  # type: ignore[attr-defined]

    @property
    def sanitized_name(self) -> str:
        return sanitize_name(self.name)  # type: ignore[attr-defined]

    @property
    def relative_path(self) -> Path:
        """Location of the exported object inside the working copy."""
        key = self.key
        return Path(key.type.label) / f"{key.id} - {self.sanitized_name}{OBJECT_FILE_SUFFIX}"

    @property
    def filter_expression(self) -> str:
        return self.key.filter_expression

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectIdentity):
            return False
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ObjectIdentity):
            return NotImplemented
        return self.key < other.key

    def __str__(self) -> str:
        return (
            f"{self.key}: {self.name}, Modified={self.modified.isoformat(sep=' ')}, "  # type: ignore[attr-defined]
            f"VersionList={self.version_list}"  # type: ignore[attr-defined]
        )


def _coerce_date(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip()).date()
    return value


def _coerce_time(value: Any) -> Any:
    # SQL Server keeps the time of day as a datetime on 1754-01-01
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        text = value.strip()
        try:
            return time.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).time()
    return value


class ObjectRow(BaseModel):
    """
    A raw row of the NAV object table.

    Rows are validated into DatabaseObject instances with
    `DatabaseObject.from_row`, which enforces the supported-type and
    default-company restrictions.
    """

    type: int = Field(description="Object type ordinal")
    id: int = Field(ge=0, description="Object ID")
    company_name: str = Field(default="", description="Company the object is bound to")
    name: str = Field(default="", description="Object name")
    modified: bool = Field(default=False, description="Modified flag set by the IDE")
    modified_date: date = Field(description="Date of the last modification")
    modified_time: time = Field(description="Time of day of the last modification")
    version_list: str = Field(default="", description="Version list tag")

    @field_validator("modified_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Any:
        return _coerce_date(value)

    @field_validator("modified_time", mode="before")
    @classmethod
    def _parse_time(cls, value: Any) -> Any:
        return _coerce_time(value)

    @field_validator("company_name", "name", "version_list", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class DatabaseObject(ObjectIdentity, BaseModel):
    """
    An object as recorded in the NAV object table.

    This is also the form stored in the object cache; a cached entry and the
    database row it was taken from are the same model.

    Example:
        >>> obj = DatabaseObject(
        ...     type=NavObjectType.CODEUNIT,
        ...     id=99997,
        ...     name="TN_Test",
        ...     modified_date=date(2015, 9, 28),
        ...     modified_time=time(12, 0),
        ...     version_list="CMNM6.03",
        ... )
        >>> obj.filter_expression
        'Type=Codeunit;ID=99997'
        >>> str(obj.relative_path)
        'Codeunit/99997 - TN_Test.txt'
    """

    model_config = ConfigDict(frozen=True)

    type: SupportedType
    id: int = Field(ge=0)
    name: str
    modified_date: date
    modified_time: time
    version_list: str = ""

    @classmethod
    def from_row(cls, row: ObjectRow) -> DatabaseObject:
        """
        Build a database object from a raw table row.

        Raises:
            UnsupportedObjectError: If the row belongs to a company or has a
                type that is unknown, reserved or otherwise unsupported.
        """
        cache_key = f"{row.type}.{row.id}"
        if row.company_name:
            raise UnsupportedObjectError(
                cache_key,
                f"holds a variant for company '{row.company_name}', which is unsupported",
                company_name=row.company_name,
            )
        if row.type not in SUPPORTED_TYPES:
            raise UnsupportedObjectError(cache_key, f"object type {row.type} is unsupported")
        return cls(
            type=NavObjectType(row.type),
            id=row.id,
            name=row.name,
            modified_date=row.modified_date,
            modified_time=row.modified_time,
            version_list=row.version_list,
        )


class FileObject(ObjectIdentity, BaseModel):
    """An object as described by the header of an exported text file."""

    model_config = ConfigDict(frozen=True)

    type: SupportedType
    id: int = Field(ge=0)
    name: str
    modified_date: date
    modified_time: time
    version_list: str = ""
    path: Path = Field(description="File the object was parsed from")
