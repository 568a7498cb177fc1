# tests/test_line_index.py
"""
Tests for diagnostic line parsing and the emitted-line index.
"""

import pytest

from blazer.errors import MalformedDiagnosticLine
from blazer.line_index import (
    DiagnosticLineIndex,
    DiagnosticRecord,
    LineIndexBuilder,
    parse_diagnostic_line,
)
from tests.conftest import asm_line

ROOT = "/home/dev/proj"


class TestParseDiagnosticLine:

    def test_assembly_listing_form(self):
        text = asm_line(f"{ROOT}/pkg/a.go", 12, "CALL\tpkg.g(SB)")
        assert parse_diagnostic_line(text, ROOT) == DiagnosticRecord(f"{ROOT}/pkg/a.go", 12)

    def test_colon_terminated_form(self):
        text = f"{ROOT}/a.go:5:\tMOVQ AX, BX"
        assert parse_diagnostic_line(text, ROOT) == DiagnosticRecord(f"{ROOT}/a.go", 5)

    def test_prefix_before_anchor_is_ignored(self):
        text = f"# pkg\nsome noise {ROOT}/a.go:7:\tRET"
        record = parse_diagnostic_line(text, ROOT)
        assert record is not None
        assert record.path == f"{ROOT}/a.go"
        assert record.line == 7

    def test_line_outside_project(self):
        text = asm_line("/usr/lib/go/src/fmt/print.go", 40)
        assert parse_diagnostic_line(text, ROOT) is None

    def test_header_line_without_position(self):
        assert parse_diagnostic_line("# example.com/proj/pkg", ROOT) is None

    def test_missing_colon(self):
        with pytest.raises(MalformedDiagnosticLine):
            parse_diagnostic_line(f"{ROOT}/a.go\tMOVQ", ROOT)

    def test_missing_tab(self):
        with pytest.raises(MalformedDiagnosticLine) as info:
            parse_diagnostic_line(f"{ROOT}/a.go:5: MOVQ", ROOT)
        assert "tab" in info.value.reason

    def test_non_integer_line(self):
        with pytest.raises(MalformedDiagnosticLine):
            parse_diagnostic_line(f"({ROOT}/a.go:abc)\tMOVQ", ROOT)

    def test_empty_line_field(self):
        with pytest.raises(MalformedDiagnosticLine):
            parse_diagnostic_line(f"({ROOT}/a.go:)\tMOVQ", ROOT)

    def test_zero_line(self):
        with pytest.raises(MalformedDiagnosticLine):
            parse_diagnostic_line(f"({ROOT}/a.go:0)\tMOVQ", ROOT)

    def test_malformed_is_value_error(self):
        with pytest.raises(ValueError):
            parse_diagnostic_line(f"({ROOT}/a.go:x1)\tMOVQ", ROOT)


class TestDiagnosticLineIndex:

    def test_from_mapping_sorts_and_dedupes(self):
        index = DiagnosticLineIndex.from_mapping({"/p/a.go": [20, 10, 12, 10, 20]})
        assert index.lines_for("/p/a.go") == (10, 12, 20)

    def test_absent_file(self):
        index = DiagnosticLineIndex.from_mapping({"/p/a.go": [1]})
        assert index.lines_for("/p/b.go") is None
        assert "/p/b.go" not in index

    def test_present_but_empty(self):
        index = DiagnosticLineIndex.from_mapping({"/p/a.go": []})
        assert index.lines_for("/p/a.go") == ()
        assert "/p/a.go" in index

    def test_files_sorted(self):
        index = DiagnosticLineIndex.from_mapping({"/p/b.go": [1], "/p/a.go": [2]})
        assert index.files == ["/p/a.go", "/p/b.go"]
        assert list(index) == ["/p/a.go", "/p/b.go"]
        assert len(index) == 2

    def test_repr(self):
        index = DiagnosticLineIndex.from_mapping({"/p/a.go": [1, 2, 2]})
        assert repr(index) == "<DiagnosticLineIndex files=1 lines=2>"


class TestLineIndexBuilder:

    def test_requires_anchor(self):
        with pytest.raises(ValueError):
            LineIndexBuilder("")

    def test_strictly_increasing_regardless_of_order(self):
        builder = LineIndexBuilder(ROOT)
        for n in (30, 5, 17, 5, 30, 1, 17):
            builder.feed(asm_line(f"{ROOT}/a.go", n))
        index = builder.build()
        lines = index.lines_for(f"{ROOT}/a.go")
        assert lines == (1, 5, 17, 30)
        assert all(a < b for a, b in zip(lines, lines[1:]))

    def test_files_kept_apart(self):
        builder = LineIndexBuilder(ROOT)
        builder.feed_all([
            asm_line(f"{ROOT}/a.go", 3),
            asm_line(f"{ROOT}/sub/b.go", 4),
            asm_line(f"{ROOT}/a.go", 2),
        ])
        index = builder.build()
        assert index.lines_for(f"{ROOT}/a.go") == (2, 3)
        assert index.lines_for(f"{ROOT}/sub/b.go") == (4,)

    def test_malformed_lines_are_skipped(self):
        builder = LineIndexBuilder(ROOT)
        builder.feed_all([
            asm_line(f"{ROOT}/a.go", 3),
            f"({ROOT}/a.go:notanumber)\tMOVQ",
            f"{ROOT}/a.go without delimiters",
            asm_line(f"{ROOT}/a.go", 9),
        ])
        index = builder.build()
        assert index.lines_for(f"{ROOT}/a.go") == (3, 9)
        assert builder.malformed == 2
        assert builder.records == 2
        assert builder.lines_seen == 4

    def test_foreign_lines_never_contribute(self):
        builder = LineIndexBuilder(ROOT).feed_all([
            asm_line("/usr/lib/go/src/runtime/proc.go", 100),
            "ok  \texample.com/proj\t0.01s",
        ])
        index = builder.build()
        assert len(index) == 0
        assert builder.records == 0
        assert builder.malformed == 0

    def test_trailing_newlines_stripped(self):
        builder = LineIndexBuilder(ROOT)
        builder.feed(f"{ROOT}/a.go:5:\tMOVQ\r\n")
        assert builder.build().lines_for(f"{ROOT}/a.go") == (5,)

    def test_repeated_position_dedupes_to_single_line(self):
        builder = LineIndexBuilder(ROOT).feed_all([
            f"{ROOT}/a.go:5:\tMOVQ AX, BX",
            f"{ROOT}/a.go:5:\tRET",
        ])
        assert builder.build().lines_for(f"{ROOT}/a.go") == (5,)
