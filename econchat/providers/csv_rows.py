"""CSV parsing with per-cell numeric coercion for tabular data sources."""

from __future__ import annotations

import csv
import io
import re
from typing import Dict, List, Union

Cell = Union[int, float, str]

# A complete decimal floating-point literal: optional sign, digits with optional
# fraction (or a bare fraction), optional exponent.
_FLOAT_LITERAL = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INT_LITERAL = re.compile(r"^[+-]?\d+$")


def coerce_cell(raw: str) -> Cell:
    """Return a number when the whole cell is a numeric literal, else the cell unchanged."""
    text = raw.strip()
    if _INT_LITERAL.match(text):
        return int(text)
    if _FLOAT_LITERAL.match(text):
        return float(text)
    return raw


def parse_csv_rows(text: str) -> List[Dict[str, Cell]]:
    """Parse CSV text into dict rows keyed by header, coercing each cell."""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        header = [column.strip() for column in next(reader)]
    except StopIteration:
        return []

    rows: List[Dict[str, Cell]] = []
    for values in reader:
        if not any(value.strip() for value in values):
            continue
        row: Dict[str, Cell] = {}
        for index, column in enumerate(header):
            row[column] = coerce_cell(values[index]) if index < len(values) else ""
        rows.append(row)
    return rows
