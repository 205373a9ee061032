#!/usr/bin/env python3
"""
Record Emitter

Filters aggregated blob records by kind and renders them through a
user-supplied output template.

Templates use str.format syntax, e.g. "{sha}\\t{size}\\t{path}". Only the
fields in OutputField may appear. Templates are validated when they are
constructed, which happens before the history scan starts.
"""

import string
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import TextIO

from blob_aggregator import BlobKind, BlobRecord
from path_index import PathIndex

DEFAULT_FORMAT = "{sha}\t{kind}\t{size}\t{path}"
REFS_COLUMN = "\t{refs}"

SORT_ORDERS = ("discovery", "path", "size")


class OutputField(Enum):
    """Fields available to output templates"""

    SHA = "sha"
    PATH = "path"
    SIZE = "size"
    KIND = "kind"
    REFS = "refs"


class DisplayKind(Enum):
    """Which records to show"""

    IN_USE = "in-use"
    NOT_IN_USE = "not-in-use"
    ALL = "all"

    def includes(self, kind: BlobKind) -> bool:
        if self is DisplayKind.ALL:
            return True
        return self.value == kind.value


class TemplateError(ValueError):
    """Output template is malformed or references an unknown field"""


_FORMATTER = string.Formatter()
_FIELD_NAMES = {field.value for field in OutputField}


def _template_fields(text: str) -> list[str]:
    """Field names used by a template, including ones nested in format specs"""
    try:
        parsed = list(_FORMATTER.parse(text))
    except ValueError as e:
        raise TemplateError(f"Invalid format string {text!r}: {e}") from e

    names = []
    for _literal, field_name, format_spec, _conversion in parsed:
        if field_name is None:
            continue
        names.append(field_name)
        if format_spec:
            names.extend(_template_fields(format_spec))
    return names


class OutputTemplate:
    """A validated output template"""

    def __init__(self, text: str):
        unknown = [name for name in _template_fields(text) if name not in _FIELD_NAMES]
        if unknown:
            available = ", ".join(sorted(_FIELD_NAMES))
            raise TemplateError(f"Unknown placeholder {{{unknown[0]}}} in format; available placeholders: {available}")

        self.text = text
        self.fields = {OutputField(name) for name in _template_fields(text)}

        # Conversions and format specs are only checked by formatting
        try:
            text.format(**{name: name for name in _FIELD_NAMES})
        except (ValueError, TypeError) as e:
            raise TemplateError(f"Invalid format string {text!r}: {e}") from e

    @property
    def uses_refs(self) -> bool:
        return OutputField.REFS in self.fields

    def render(self, record: BlobRecord, refs: Sequence[str] = ()) -> str:
        return self.text.format(
            sha=record.sha,
            path=record.path,
            size=record.size_label,
            kind=record.kind.value,
            refs=",".join(refs),
        )


def sort_records(records: Iterable[BlobRecord], order: str = "discovery") -> list[BlobRecord]:
    """Order records for output

    Args:
        records: Records in discovery order
        order: "discovery" keeps the order, "path" sorts by path then sha,
            "size" puts the largest blobs first

    Returns:
        List of records in the requested order
    """
    if order == "discovery":
        return list(records)
    if order == "path":
        return sorted(records, key=lambda record: (record.path, record.sha))
    if order == "size":
        return sorted(records, key=lambda record: (-record.size, record.path, record.sha))
    raise ValueError(f"Unknown sort order {order!r}; expected one of {', '.join(SORT_ORDERS)}")


def emit_records(
    records: Iterable[BlobRecord],
    display_kind: DisplayKind,
    path_index: PathIndex,
    template: OutputTemplate,
    terminator: str,
    stream: TextIO,
) -> int:
    """Write the records matching display_kind to stream

    The refs field lists every ref (selected or not) whose tip tree currently
    contains the record's path.

    Returns:
        Number of records written
    """
    written = 0
    for record in records:
        if not display_kind.includes(record.kind):
            continue

        refs = path_index.refs_for(record.path) if template.uses_refs else ()
        stream.write(template.render(record, refs) + terminator)
        written += 1

    return written
