"""
Reading address lists from spreadsheets.

Loads a CSV or Excel sheet, works out which columns hold the address parts
and flattens each row into a single address string for the normalizer.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from openpyxl import load_workbook


UNMAPPED = -1


@dataclass
class ColumnMapping:
    """
    Column indexes of the address parts (UNMAPPED when absent).

    Attributes:
        street: Street line or the full address
        city: City
        state: State
        zip: ZIP code
        plus4: ZIP+4 add-on
    """

    street: int = UNMAPPED
    city: int = UNMAPPED
    state: int = UNMAPPED
    zip: int = UNMAPPED
    plus4: int = UNMAPPED


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    # Excel stores ZIP columns as numbers
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_table(path: Path) -> tuple[list[str], list[list[str]]]:
    """
    Load a sheet as a header row and body rows of strings.

    CSV files are read as UTF-8 (BOM tolerated). For Excel workbooks the
    first sheet is used, with cell values rather than formulas.

    Parameters:
        path: .csv, .xlsx or .xlsm file

    Returns:
        (headers, rows); both empty for an empty sheet

    Raises:
        ValueError: If the file type is not supported
        FileNotFoundError: If the file does not exist
    """
    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open("r", encoding="utf-8-sig", newline="") as f:
            data = [[_cell_text(c) for c in row] for row in csv.reader(f)]
    elif suffix in (".xlsx", ".xlsm"):
        wb = load_workbook(path, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            data = [[_cell_text(c) for c in row] for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
    else:
        raise ValueError(f"Unsupported spreadsheet format: {path.suffix or '(none)'}")

    if not data:
        return [], []
    return data[0], data[1:]


def detect_mapping(headers: list[str]) -> ColumnMapping:
    """
    Guess the address columns from header names.

    Rules are checked in order per header and the first match wins:
    street (street/address/addr/line 1), city (city/town), state
    (state/province or exactly "st"), zip (zip/postal/code, excluding
    "plus" and "+"), plus4 (plus/+4/add-on/addon). A later header matching
    the same part overrides an earlier one. A single-column sheet with no
    recognised street column is treated as full addresses.

    Example:
        >>> detect_mapping(["Address", "City", "ST", "Zip Code", "Plus4"])
        ColumnMapping(street=0, city=1, state=2, zip=3, plus4=4)
    """
    mapping = ColumnMapping()

    for idx, header in enumerate(headers):
        lower = header.lower()
        if any(k in lower for k in ("street", "address", "addr", "line 1")):
            mapping.street = idx
        elif "city" in lower or "town" in lower:
            mapping.city = idx
        elif "state" in lower or "province" in lower or lower == "st":
            mapping.state = idx
        elif (
            any(k in lower for k in ("zip", "postal", "code"))
            and "plus" not in lower
            and "+" not in lower
        ):
            mapping.zip = idx
        elif any(k in lower for k in ("plus", "+4", "add-on", "addon")):
            mapping.plus4 = idx

    if mapping.street == UNMAPPED and len(headers) == 1:
        mapping.street = 0

    return mapping


def resolve_column(headers: list[str], ref: str) -> int:
    """
    Turn a column reference into an index.

    The reference is a header name (case-insensitive) or a 0-based index.

    Raises:
        ValueError: If no such column exists
    """
    wanted = ref.strip().lower()
    for idx, header in enumerate(headers):
        if header.strip().lower() == wanted:
            return idx
    if wanted.isdigit() and int(wanted) < len(headers):
        return int(wanted)
    raise ValueError(f"No column {ref!r} in headers {headers}")


def build_addresses(rows: Iterable[list[str]], mapping: ColumnMapping) -> list[str]:
    """
    Flatten rows into "street, city, state, zip-plus4" strings.

    Empty parts are skipped. A +4 with no ZIP is written as "ZIP+4:<plus4>".
    Rows without a street value are dropped.

    Example:
        >>> build_addresses([["1 Main St", "Springfield", "IL", "62701", "1234"]],
        ...                 ColumnMapping(0, 1, 2, 3, 4))
        ['1 Main St, Springfield, IL, 62701-1234']
    """

    def value(row: list[str], idx: int) -> str:
        if idx == UNMAPPED or idx >= len(row):
            return ""
        return row[idx]

    addresses: list[str] = []
    for row in rows:
        street = value(row, mapping.street)
        if not street:
            continue

        zip_code = value(row, mapping.zip)
        plus4 = value(row, mapping.plus4)
        if plus4:
            zip_code = f"{zip_code}-{plus4}" if zip_code else f"ZIP+4:{plus4}"

        parts = [street, value(row, mapping.city), value(row, mapping.state), zip_code]
        addresses.append(", ".join(p for p in parts if p))

    return addresses
