"""
Tests for Adobe Stock CSV export.
"""

import csv
import os
import time

import pytest

from models.metadata import Metadata
from services.csv_export import CSV_COLUMNS, CsvExportService
from utils.error_handlers import ProcessingError

LONG_TITLE = "Fresh red apples in a woven basket on a rustic wooden kitchen table"


@pytest.fixture
def exporter(tmp_path):
    return CsvExportService(tmp_path / "csv_output")


def metadata(**overrides) -> Metadata:
    values = {
        "filename": "apple.jpg",
        "title": LONG_TITLE,
        "keywords": "apple,fruit,food",
        "category": 7,
    }
    values.update(overrides)
    return Metadata(**values)


def read_rows(path):
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.reader(f))


class TestGenerateCsv:

    @pytest.mark.asyncio
    async def test_header_and_rows(self, exporter):
        path = exporter.get_path("out.csv")
        await exporter.generate_csv(
            [metadata(), metadata(filename="pear.jpg", category=14, releases="model-release.pdf")],
            path
        )

        rows = read_rows(path)
        assert rows[0] == CSV_COLUMNS
        assert rows[1] == ["apple.jpg", LONG_TITLE, "apple,fruit,food", "7", ""]
        assert rows[2] == ["pear.jpg", LONG_TITLE, "apple,fruit,food", "14", "model-release.pdf"]

    @pytest.mark.asyncio
    async def test_quoting(self, exporter):
        path = exporter.get_path("quoted.csv")
        await exporter.generate_csv([metadata(title='Sign reading "open", lit at night')], path)

        raw = path.read_text(encoding="utf-8")
        assert '"Sign reading ""open"", lit at night"' in raw
        assert '"apple,fruit,food"' in raw
        assert read_rows(path)[1][1] == 'Sign reading "open", lit at night'

    @pytest.mark.asyncio
    async def test_utf8(self, exporter):
        path = exporter.get_path("utf8.csv")
        await exporter.generate_csv([metadata(title="Café crème on a marble counter")], path)
        assert read_rows(path)[1][1] == "Café crème on a marble counter"

    @pytest.mark.asyncio
    async def test_empty_list(self, exporter):
        with pytest.raises(ProcessingError) as exc_info:
            await exporter.generate_csv([], exporter.get_path("empty.csv"))

        assert exc_info.value.code == "EMPTY_METADATA_LIST"
        assert not exporter.get_path("empty.csv").exists()

    @pytest.mark.asyncio
    async def test_write_failure(self, exporter, tmp_path):
        with pytest.raises(ProcessingError) as exc_info:
            await exporter.generate_csv([metadata()], tmp_path / "missing-dir" / "out.csv")

        assert exc_info.value.code == "CSV_GENERATION_FAILED"
        assert exc_info.value.details["record_count"] == 1


class TestValidateMetadata:

    def test_valid(self, exporter):
        result = exporter.validate_metadata(metadata())
        assert result == {"valid": True, "errors": []}

    def test_short_title(self, exporter):
        result = exporter.validate_metadata(metadata(title="Too short"))
        assert not result["valid"]
        assert "Title must be between 50 and 200 characters" in result["errors"]

    def test_missing_fields(self, exporter):
        result = exporter.validate_metadata(metadata(filename=" ", keywords="", category=0))
        assert not result["valid"]
        assert len(result["errors"]) == 3

    def test_validate_list(self, exporter):
        result = exporter.validate_metadata_list([metadata(), metadata(title="short")])
        assert not result["valid"]
        assert [item["index"] for item in result["invalid_items"]] == [1]


class TestCleanup:

    @pytest.mark.asyncio
    async def test_removes_only_old_csv_files(self, exporter):
        old = exporter.get_path("old.csv")
        fresh = exporter.get_path("fresh.csv")
        other = exporter.get_path("notes.txt")
        for path in (old, fresh, other):
            path.write_text("x")
        past = time.time() - 2 * 24 * 3600
        os.utime(old, (past, past))
        os.utime(other, (past, past))

        deleted = await exporter.cleanup_old_csv_files()

        assert deleted == 1
        assert not old.exists()
        assert fresh.exists()
        assert other.exists()
