"""CSV feed parsing: raw feed bytes -> SKU/quantity snapshot.

Pure functions: no I/O, no clock. The delimiter is detected from the header
line only; quantity cells are sanitized and clamped to non-negative ints.
"""

import csv
import re
from typing import Iterator, Union

from stock_sync.errors import ColumnNotFoundError, EmptyFeedError
from stock_sync.models.feed import FeedPreview, FeedRow, FeedSnapshot

# Detection order doubles as the tie-break: the first maximal candidate wins.
DELIMITER_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")
PREVIEW_ROWS = 5

_BOM = "\ufeff"
_QTY_STRIP = re.compile(r"[^0-9.\-]")
_INT_PREFIX = re.compile(r"^-?\d+")


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if raw.startswith(_BOM):
        raw = raw[len(_BOM):]
    return raw


def _lines(raw: Union[bytes, str]) -> list[str]:
    """Decoded, BOM-stripped, line-ending-normalized non-blank lines."""
    text = _decode(raw).replace("\r\n", "\n").replace("\r", "\n")
    return [line for line in text.split("\n") if line.strip()]


def _split(line: str, delimiter: str) -> list[str]:
    """Split one record, honoring double quotes."""
    for record in csv.reader([line], delimiter=delimiter, quotechar='"'):
        return record
    return []


def detect_delimiter(header_line: str) -> str:
    """Return the candidate delimiter that yields the most fields for the header."""
    best = DELIMITER_CANDIDATES[0]
    best_count = 0
    for candidate in DELIMITER_CANDIDATES:
        count = len(_split(header_line, candidate))
        if count > best_count:
            best = candidate
            best_count = count
    return best


def delimiter_label(delimiter: str) -> str:
    return "tab" if delimiter == "\t" else delimiter


def parse_quantity(cell: str) -> int:
    """Keep digits, '.' and '-', take the integer prefix, clamp at zero.

    ``"-5"`` -> 0, ``"12.9abc"`` -> 12, ``""`` -> 0.
    """
    cleaned = _QTY_STRIP.sub("", cell or "")
    match = _INT_PREFIX.match(cleaned)
    if not match:
        return 0
    return max(0, int(match.group(0)))


def _find_column(headers: list[str], configured: str, which: str) -> int:
    wanted = configured.strip().lower()
    try:
        return headers.index(wanted)
    except ValueError:
        raise ColumnNotFoundError(which, configured, headers) from None


def iter_rows(lines: list[str], delimiter: str, sku_index: int, quantity_index: int) -> Iterator[FeedRow]:
    """Yield FeedRows for data lines; short lines and empty SKUs are skipped."""
    needed = max(sku_index, quantity_index) + 1
    for line in lines:
        fields = _split(line, delimiter)
        if len(fields) < needed:
            continue
        sku = fields[sku_index].strip()
        if not sku:
            continue
        yield FeedRow(sku, parse_quantity(fields[quantity_index].strip()))


def parse(raw: Union[bytes, str], sku_column: str, quantity_column: str) -> FeedSnapshot:
    """Parse a feed into a SKU -> quantity snapshot.

    Raises EmptyFeedError when there is no header plus at least one data line,
    ColumnNotFoundError when a configured column is not in the header.
    """
    lines = _lines(raw)
    if not lines:
        raise EmptyFeedError("CSV file is empty.")
    if len(lines) < 2:
        raise EmptyFeedError("CSV file must have a header row and at least one data row.")

    delimiter = detect_delimiter(lines[0])
    headers = [h.strip().lower() for h in _split(lines[0], delimiter)]
    sku_index = _find_column(headers, sku_column, "sku")
    quantity_index = _find_column(headers, quantity_column, "quantity")

    quantities: dict[str, int] = {}
    for row in iter_rows(lines[1:], delimiter, sku_index, quantity_index):
        quantities[row.sku] = row.quantity

    return FeedSnapshot(
        quantities=quantities,
        headers=headers,
        sku_index=sku_index,
        quantity_index=quantity_index,
        delimiter=delimiter,
    )


def preview(raw: Union[bytes, str], max_rows: int = PREVIEW_ROWS) -> FeedPreview:
    """Header (case kept) and the first data rows, for mapping columns before a run."""
    lines = _lines(raw)
    if not lines:
        raise EmptyFeedError("CSV file is empty.")
    delimiter = detect_delimiter(lines[0])
    columns = [h.strip() for h in _split(lines[0], delimiter)]
    sample = [_split(line, delimiter) for line in lines[1:1 + max_rows]]
    return FeedPreview(columns=columns, sample=sample, delimiter=delimiter_label(delimiter))


class FeedParser:
    """Object seam over the module functions, for injection into the engine."""

    def parse(self, raw: Union[bytes, str], sku_column: str, quantity_column: str) -> FeedSnapshot:
        return parse(raw, sku_column, quantity_column)

    def preview(self, raw: Union[bytes, str], max_rows: int = PREVIEW_ROWS) -> FeedPreview:
        return preview(raw, max_rows)

    def detect_delimiter(self, header_line: str) -> str:
        return detect_delimiter(header_line)
