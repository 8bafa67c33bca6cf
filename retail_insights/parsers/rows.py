"""
retail_insights/parsers/rows.py

Shared row cleanup for all tabular file parsers.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Iterable, Sequence

from retail_insights.domain.tabular import FileParserOptions, ParsedFile, ParsedRow, RawCell
from retail_insights.errors import ParseError


def clean_cell(value: Any) -> RawCell:
    """
    Trim a raw cell; blank and missing values become None.
    """

    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def is_blank_row(cells: Sequence[Any]) -> bool:
    return all(clean_cell(cell) is None for cell in cells)


def clean_headers(raw_headers: Sequence[Any]) -> tuple[str, ...]:
    """
    Trim header names, name blank headers positionally, reject duplicates.
    """

    headers: list[str] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_headers):
        header = clean_cell(raw) or f"Column_{index + 1}"
        key = header.lower()
        if key in seen:
            raise ParseError(f"Duplicate column header '{header}'.")
        seen.add(key)
        headers.append(header)
    return tuple(headers)


def build_parsed_file(
    raw_rows: Iterable[Sequence[Any]],
    *,
    file_name: str,
    options: FileParserOptions,
) -> ParsedFile:
    """
    Turn raw row sequences into a ParsedFile.

    Fully empty lines are skipped. The first remaining line is the header row
    unless ``options.has_header`` is False, in which case headers are
    synthesized from the widest row. Cells are trimmed but never coerced.
    """

    non_empty = (list(cells) for cells in raw_rows if not is_blank_row(cells))

    headers: tuple[str, ...] | None = None
    buffered: list[list[Any]] = []
    if options.has_header:
        first = next(non_empty, None)
        if first is None:
            raise ParseError("File is empty.")
        headers = clean_headers(first)

    rows: list[ParsedRow] = []
    truncated = False
    for cells in non_empty:
        if options.max_rows is not None and len(rows) + len(buffered) >= options.max_rows:
            truncated = True
            break
        if headers is None:
            buffered.append(cells)
            continue
        rows.append(_to_row(headers, cells))

    if headers is None:
        if not buffered:
            raise ParseError("File is empty.")
        width = max(len(cells) for cells in buffered)
        headers = tuple(f"Column_{index + 1}" for index in range(width))
        rows = [_to_row(headers, cells) for cells in buffered]

    return ParsedFile(
        headers=headers,
        rows=tuple(rows),
        file_name=file_name,
        truncated=truncated,
        preview_size=max(0, options.max_preview_rows),
    )


def _to_row(headers: tuple[str, ...], cells: Sequence[Any]) -> ParsedRow:
    values = [clean_cell(cell) for cell in cells[: len(headers)]]
    values.extend([None] * (len(headers) - len(values)))
    return MappingProxyType(dict(zip(headers, values)))
