from __future__ import annotations

import io

import pytest

from blob_aggregator import BlobKind, BlobRecord
from fakes import MB
from path_index import PathIndex
from record_emitter import (
    DEFAULT_FORMAT,
    REFS_COLUMN,
    DisplayKind,
    OutputField,
    OutputTemplate,
    TemplateError,
    emit_records,
    sort_records,
)

BIG = BlobRecord(sha="a" * 40, path="big.bin", size=2 * MB, kind=BlobKind.IN_USE)
OLD = BlobRecord(sha="b" * 40, path="old.bin", size=3 * MB, kind=BlobKind.NOT_IN_USE)
HUGE = BlobRecord(sha="c" * 40, path="assets/huge.iso", size=30 * MB, kind=BlobKind.NOT_IN_USE)


def _index() -> PathIndex:
    index = PathIndex()
    index.add("big.bin", "refs/heads/main", selected=True)
    index.add("big.bin", "refs/heads/feature")
    index.add("old.bin", "refs/heads/feature")
    return index


def _emit(records: list[BlobRecord], kind: DisplayKind, fmt: str = "{path}", terminator: str = "\n") -> str:
    stream = io.StringIO()
    emit_records(records, kind, _index(), OutputTemplate(fmt), terminator, stream)
    return stream.getvalue()


def test_default_format_renders_all_columns() -> None:
    template = OutputTemplate(DEFAULT_FORMAT)

    assert template.render(BIG) == f"{'a' * 40}\tin-use\t2.0MB\tbig.bin"
    assert not template.uses_refs


def test_refs_column_lists_all_current_refs_for_the_path() -> None:
    output = _emit([BIG, OLD, HUGE], DisplayKind.ALL, "{path}" + REFS_COLUMN)

    assert output.splitlines() == [
        "big.bin\trefs/heads/feature,refs/heads/main",
        "old.bin\trefs/heads/feature",
        "assets/huge.iso\t",
    ]


def test_format_specs_and_conversions_are_allowed() -> None:
    template = OutputTemplate("{size:>8}|{kind!r}")

    assert template.fields == {OutputField.SIZE, OutputField.KIND}
    assert template.render(OLD) == "   3.0MB|'not-in-use'"


@pytest.mark.parametrize(
    "text",
    [
        "{bogus}",
        "{}",
        "{0}",
        "{sha.upper}",
        "{path[0]}",
        "{path:{nope}}",
        "{size:d}",
        "{sha!x}",
        "{sha",
        "sha}",
    ],
)
def test_invalid_templates_are_rejected(text: str) -> None:
    with pytest.raises(TemplateError):
        OutputTemplate(text)


def test_escaped_braces_are_literal() -> None:
    assert OutputTemplate("{{{path}}}").render(BIG) == "{big.bin}"


def test_kind_filters() -> None:
    records = [BIG, OLD, HUGE]

    in_use = _emit(records, DisplayKind.IN_USE).splitlines()
    not_in_use = _emit(records, DisplayKind.NOT_IN_USE).splitlines()
    everything = _emit(records, DisplayKind.ALL).splitlines()

    assert in_use == ["big.bin"]
    assert not_in_use == ["old.bin", "assets/huge.iso"]
    assert set(in_use).isdisjoint(not_in_use)
    assert sorted(everything) == sorted(in_use + not_in_use)


def test_nul_terminator_and_count() -> None:
    stream = io.StringIO()

    written = emit_records([BIG, OLD], DisplayKind.ALL, _index(), OutputTemplate("{path}"), "\0", stream)

    assert written == 2
    assert stream.getvalue() == "big.bin\0old.bin\0"


def test_sort_orders() -> None:
    records = [BIG, OLD, HUGE]

    assert sort_records(records) == records
    assert sort_records(records, "path") == [HUGE, BIG, OLD]
    assert sort_records(records, "size") == [HUGE, OLD, BIG]
    with pytest.raises(ValueError):
        sort_records(records, "random")
