"""Tests for pipeline export utilities."""

from pathlib import Path
import csv
import tempfile

import pytest
from openpyxl import load_workbook

from imbarch.normalizer import StandardizedAddress
from imbarch.pipeline.output import (
    EXPORT_COLUMNS,
    SHEET_TITLE,
    export_row,
    export_rows,
    write_csv,
    write_export,
    write_xlsx,
)
from imbarch.pipeline.queue import RecordQueue


def make_records():
    """One completed, one failed and one pending record."""
    queue = RecordQueue()
    done, failed, _pending = queue.ingest(["1 Main St", "nowhere", "3 Main St"])
    done.start()
    done.complete(
        StandardizedAddress(
            street="1 MAIN ST",
            city="SPRINGFIELD",
            state="IL",
            zip="02134",
            plus4="0012",
            delivery_point="01",
        ),
        "0030012345600000000102134001201",
    )
    failed.start()
    failed.fail()
    return queue.records


class TestExportRows:
    """Tests for export_row() and export_rows()."""

    def test_columns_in_order(self):
        row = export_row(make_records()[0])

        assert list(row) == EXPORT_COLUMNS

    def test_completed_record_values(self):
        row = export_row(make_records()[0])

        assert row["Original Address"] == "1 Main St"
        assert row["Standardized Street"] == "1 MAIN ST"
        assert row["ZIP"] == "02134"
        assert row["Plus 4"] == "0012"
        assert row["Delivery Point"] == "01"
        assert row["IMB Payload"] == "0030012345600000000102134001201"
        assert row["Sequence Number"] == 1

    def test_every_record_exported_with_blanks(self):
        """Test that non-completed records still get a row with blank fields."""
        rows = export_rows(make_records())

        assert [r["Original Address"] for r in rows] == ["1 Main St", "nowhere", "3 Main St"]
        for row in rows[1:]:
            assert row["Standardized Street"] == ""
            assert row["IMB Payload"] == ""
        assert [r["Sequence Number"] for r in rows] == [1, 2, 3]


class TestWriters:
    """Tests for the CSV and XLSX writers."""

    def test_write_csv(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "out.csv"

            write_csv(make_records(), output_path)

            with output_path.open(newline="", encoding="utf-8") as f:
                rows = list(csv.DictReader(f))

        assert len(rows) == 3
        assert rows[0]["ZIP"] == "02134"
        assert rows[1]["IMB Payload"] == ""

    def test_write_xlsx_keeps_leading_zeros(self):
        """Test that payload and ZIP cells are stored as text."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "out.xlsx"

            write_xlsx(make_records(), output_path)

            wb = load_workbook(output_path)
            ws = wb.active
            values = [list(row) for row in ws.iter_rows(values_only=True)]

        assert ws.title == SHEET_TITLE
        assert values[0] == EXPORT_COLUMNS
        assert values[1][4] == "02134"
        assert values[1][7] == "0030012345600000000102134001201"
        assert len(values) == 4

    def test_writers_create_parent_dirs(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "subdir" / "out.csv"

            write_csv(make_records(), output_path)

            assert output_path.exists()

    def test_write_export_dispatches_on_suffix(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            xlsx = write_export(make_records(), Path(tmpdir) / "a.xlsx")
            csv_path = write_export(make_records(), Path(tmpdir) / "b.csv")

            assert xlsx.exists()
            assert csv_path.read_text(encoding="utf-8").startswith("Original Address,")

    def test_write_export_rejects_unknown_suffix(self):
        with pytest.raises(ValueError):
            write_export(make_records(), Path("/tmp/out.json"))
