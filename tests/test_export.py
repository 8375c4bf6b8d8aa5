"""Tests for CSV export."""

import csv
import io
from datetime import date

from mindsort.export import CSV_HEADER, export_csv, export_filename


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestExportCsv:
    def test_header_only_when_empty(self) -> None:
        assert export_csv([]) == ",".join(CSV_HEADER) + "\n"

    def test_one_row_per_chunk_in_order(self, make_chunk) -> None:
        chunks = [make_chunk(content="first"), make_chunk(content="second", importance="2")]

        rows = _rows(export_csv(chunks))

        assert rows[0] == CSV_HEADER
        assert [row[0] for row in rows[1:]] == ["first", "second"]
        assert rows[2][3] == "2"
        assert rows[1][3] == ""
        assert rows[1][4] == chunks[0].created_at.isoformat()

    def test_special_characters_survive(self, make_chunk) -> None:
        """Commas, quotes and newlines are quoted, not mangled."""
        content = 'She said "hi", then\nleft'
        rows = _rows(export_csv([make_chunk(content=content, emotional_intensity="high")]))

        assert len(rows) == 2
        assert rows[1][0] == content
        assert rows[1][2] == "high"

    def test_quotes_are_doubled(self, make_chunk) -> None:
        text = export_csv([make_chunk(content='a "quoted" word')])
        assert '"a ""quoted"" word"' in text


class TestExportFilename:
    def test_dated_name(self) -> None:
        assert export_filename(date(2024, 3, 15)) == "mindsort-notes-2024-03-15.csv"
