from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Sequence, Union

from .annotation import AnnotationRecord
from .errors import NotFoundError, UnsupportedVersionError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]

CURRENT_VERSION = 2
COMMENT_MARKER = "%"

_HEADER_PATTERN = re.compile(r"^%\s*bbGt\s+version=(\S+)")

# number of whitespace separated fields per data line
_FIELD_COUNTS = {0: 10, 1: 10, 2: 11}


def bb_save(records: Sequence[AnnotationRecord], path: PathLike) -> Sequence[AnnotationRecord]:
    """
    Write `records` to `path` in the version 2 text format and return them.

    Geometry is written as integers, so fractional values are truncated.
    """

    path = Path(path)
    with open(path, "w", encoding="utf-8") as handle:
        handle.write(f"{COMMENT_MARKER} bbGt version={CURRENT_VERSION}\n")
        for index, record in enumerate(records):
            if any(char.isspace() for char in record.label):
                LOGGER.warning(
                    "Record %d in %s has label %r which will not load back correctly",
                    index,
                    path,
                    record.label,
                )
            fields = [record.label]
            fields.extend(str(int(value)) for value in record.box)
            fields.append(str(int(record.occluded)))
            fields.extend(str(int(value)) for value in record.visible_box)
            fields.append(str(int(record.ignore)))
            handle.write(" ".join(fields) + "\n")
    return records


def read_version(path: PathLike) -> int:
    """Return the format version declared on the first line, 0 when absent."""

    with open(path, "r", encoding="utf-8") as handle:
        first_line = handle.readline()
    match = _HEADER_PATTERN.match(first_line.strip())
    if match is None:
        return 0
    try:
        return int(match.group(1))
    except ValueError:
        return 0


def bb_load(path: PathLike) -> List[AnnotationRecord]:
    """Load annotation records from a bbGt text file in file order."""

    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"{path} not found")

    version = read_version(path)
    field_count = _FIELD_COUNTS.get(version)
    if field_count is None:
        raise UnsupportedVersionError(version, path)

    records: List[AnnotationRecord] = []
    with open(path, "r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(COMMENT_MARKER):
                continue
            tokens = stripped.split()
            # an empty label leaves only the numeric fields on the line
            if len(tokens) == field_count - 1:
                tokens = [""] + tokens
            if len(tokens) != field_count:
                raise ValueError(
                    f"{path}:{line_number}: expected {field_count} fields for "
                    f"version {version}, found {len(tokens)}"
                )
            records.append(_parse_tokens(tokens))

    LOGGER.debug("Loaded %d records from %s (version %d)", len(records), path, version)
    return records


def _parse_tokens(tokens: Sequence[str]) -> AnnotationRecord:
    values = [int(token) for token in tokens[1:]]
    ignore = values[9] if len(values) == 10 else 0
    return AnnotationRecord(
        label=tokens[0],
        box=tuple(values[0:4]),
        occluded=bool(values[4]),
        visible_box=tuple(values[5:9]),
        ignore=bool(ignore),
    )
