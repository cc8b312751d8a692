"""
Parser for the header of exported NAV text objects.

Only the object heading and the OBJECT-PROPERTIES block are read:

    OBJECT Codeunit 99997 TN_Test
    {
      OBJECT-PROPERTIES
      {
        Date=28.09.15;
        Time=12:00:00;
        Version List=CMNM6.03;
      }
      ...

The layout is produced by finsql itself and imported back verbatim, so any
deviation is an error. Nothing is guessed or defaulted.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import TextIO

from navscm.core.exceptions import ObjectFileError
from navscm.core.objects.models import FileObject, NavObjectType, ObjectKey

DEFAULT_CODE_PAGE = "cp850"
"""Code page finsql writes text exports in, independent of the system locale."""

_HEADER_PATTERN = re.compile(r"^OBJECT ([a-zA-Z]+) (\d+) (.*)$")
_PROPERTY_PATTERN = re.compile(r"^    ([^=]+)=(.*);$")

_STRUCTURE_LINES = ("{", "  OBJECT-PROPERTIES", "  {")
_BLOCK_END = "  }"

DATE_FORMAT = "%d.%m.%y"
TIME_FORMAT = "%H:%M:%S"


def _read_line(reader: TextIO) -> str | None:
    line = reader.readline()
    if line == "":
        return None
    return line.rstrip("\r\n")


def parse_header_line(path: Path, line: str | None) -> tuple[ObjectKey, str]:
    """
    Parse the OBJECT heading line.

    Args:
        path: File being parsed (for error messages)
        line: The first line of the file, or None if the file is empty

    Returns:
        The object key and the object name

    Raises:
        ObjectFileError: If the line is missing, malformed or names an
            unsupported object type
    """
    match = _HEADER_PATTERN.match(line or "")
    if not match:
        raise ObjectFileError(path, "not a valid NAV text file, header line is invalid")

    type_word, id_text, name = match.groups()
    try:
        object_type = NavObjectType.from_label(type_word)
    except ValueError:
        object_type = None
    if object_type is None or not object_type.is_supported:
        raise ObjectFileError(path, f"contains the unsupported object type {type_word}")

    return ObjectKey(object_type, int(id_text)), name


def read_object_key(path: Path, *, encoding: str = DEFAULT_CODE_PAGE) -> ObjectKey:
    """Read only the heading line of an object file and return its key."""
    with path.open(encoding=encoding) as reader:
        key, _ = parse_header_line(path, _read_line(reader))
    return key


def _read_properties(path: Path, reader: TextIO, log: logging.Logger) -> dict[str, str]:
    for line_number, expected in enumerate(_STRUCTURE_LINES, start=2):
        line = _read_line(reader)
        log.debug("Line read: %s", line)
        if line != expected:
            raise ObjectFileError(path, f"line {line_number} did not match '{expected}'")

    properties: dict[str, str] = {}
    while True:
        line = _read_line(reader)
        if line is None:
            raise ObjectFileError(
                path, "the file ended prematurely inside the OBJECT-PROPERTIES block"
            )
        log.debug("Line read: %s", line)
        if line == _BLOCK_END:
            return properties

        match = _PROPERTY_PATTERN.match(line)
        if not match:
            raise ObjectFileError(path, f"invalid property line '{line}'")
        key, value = match.group(1).lower(), match.group(2)
        properties[key] = value
        log.debug("Added property %s => %s", key, value)


def _require(path: Path, properties: dict[str, str], key: str) -> str:
    if key not in properties:
        raise ObjectFileError(path, f"key '{key}' not found in object properties")
    return properties[key]


def _parse_timestamp(path: Path, key: str, value: str, fmt: str) -> datetime:
    try:
        return datetime.strptime(value, fmt)
    except ValueError:
        raise ObjectFileError(
            path, f"could not parse value '{value}' of key '{key}'", key=key, value=value
        ) from None


def parse_object_file(
    path: Path,
    *,
    encoding: str = DEFAULT_CODE_PAGE,
    logger: logging.Logger | None = None,
) -> FileObject:
    """
    Parse the header of an exported object file.

    Args:
        path: The text file to read
        encoding: Code page the file is written in
        logger: Logger to use instead of the module logger

    Returns:
        FileObject describing the object in the file

    Raises:
        ObjectFileError: If the file deviates from the expected layout
        OSError: If the file cannot be read
    """
    log = logger or logging.getLogger(__name__)
    path = Path(path)

    try:
        with path.open(encoding=encoding) as reader:
            header = _read_line(reader)
            log.debug("Line read: %s", header)
            key, name = parse_header_line(path, header)
            properties = _read_properties(path, reader, log)

        log.debug("Found %d properties in %s", len(properties), path)
        date_value = _require(path, properties, "date")
        modified_date = _parse_timestamp(path, "date", date_value, DATE_FORMAT)
        time_value = _require(path, properties, "time")
        modified_time = _parse_timestamp(path, "time", time_value, TIME_FORMAT)
        version_list = _require(path, properties, "version list")
    except ObjectFileError as e:
        log.error("Failed to parse %s: %s", path, e.message)
        raise

    return FileObject(
        type=key.type,
        id=key.id,
        name=name,
        modified_date=modified_date.date(),
        modified_time=modified_time.time(),
        version_list=version_list,
        path=path,
    )
