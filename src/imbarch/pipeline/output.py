"""
Export of processed address records.

Writes one row per record, in queue order and regardless of status, with
blank cells for values a record does not have.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterable

from openpyxl import Workbook

from .queue import AddressRecord


DEFAULT_EXPORT_NAME = "IMB_Processed_Addresses.xlsx"
SHEET_TITLE = "Processed Addresses"

EXPORT_COLUMNS = [
    "Original Address",
    "Standardized Street",
    "City",
    "State",
    "ZIP",
    "Plus 4",
    "Delivery Point",
    "IMB Payload",
    "Sequence Number",
]


def export_row(record: AddressRecord) -> dict[str, Any]:
    """
    Map a record onto the export columns.

    Parameters:
        record: Address record in any state

    Returns:
        Dictionary keyed by EXPORT_COLUMNS

    Example:
        >>> row = export_row(record)
        >>> row["IMB Payload"]
        '0030012345600000000190210123456'
    """
    return {
        "Original Address": record.original,
        "Standardized Street": record.street,
        "City": record.city,
        "State": record.state,
        "ZIP": record.zip,
        "Plus 4": record.plus4,
        "Delivery Point": record.delivery_point,
        "IMB Payload": record.imb_data or "",
        "Sequence Number": record.sequence_number,
    }


def export_rows(records: Iterable[AddressRecord]) -> list[dict[str, Any]]:
    return [export_row(r) for r in records]


def write_csv(records: Iterable[AddressRecord], output_path: Path) -> Path:
    """
    Write records to a CSV file with a header row.

    Creates parent directories if they don't exist.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(export_rows(records))
    return output_path


def write_xlsx(records: Iterable[AddressRecord], output_path: Path) -> Path:
    """
    Write records to an Excel workbook.

    The single sheet is titled "Processed Addresses". IMB payloads and
    routing fields are written as text so leading zeros survive.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    ws.append(EXPORT_COLUMNS)
    for row in export_rows(records):
        ws.append([row[col] for col in EXPORT_COLUMNS])
    wb.save(output_path)
    return output_path


def write_export(records: Iterable[AddressRecord], output_path: Path) -> Path:
    """
    Write records in the format implied by the file suffix.

    Parameters:
        records: Records in queue order
        output_path: Destination ending in .csv or .xlsx

    Returns:
        The path written

    Raises:
        ValueError: If the suffix is not supported
    """
    suffix = output_path.suffix.lower()
    if suffix == ".csv":
        return write_csv(records, output_path)
    if suffix == ".xlsx":
        return write_xlsx(records, output_path)
    raise ValueError(f"Unsupported export format: {output_path.suffix or '(none)'}")
