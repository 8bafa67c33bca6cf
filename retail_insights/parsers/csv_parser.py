"""
retail_insights/parsers/csv_parser.py

Delimited text parsing for uploaded CSV files.
"""

from __future__ import annotations

import csv
import io
import logging

from retail_insights.domain.tabular import FileParserOptions, ParsedFile
from retail_insights.errors import ParseError
from retail_insights.parsers.rows import build_parsed_file

logger = logging.getLogger(__name__)

_SNIFF_SAMPLE_CHARS = 64 * 1024


def parse_csv_bytes(
    data: bytes,
    *,
    file_name: str,
    options: FileParserOptions | None = None,
) -> ParsedFile:
    """
    Parse CSV content into headers and raw string rows.
    """

    options = options or FileParserOptions()
    try:
        text = data.decode(options.encoding)
    except UnicodeDecodeError as exc:
        raise ParseError(f"File must be {options.encoding} encoded.") from exc
    except LookupError as exc:
        raise ParseError(f"Unknown file encoding '{options.encoding}'.") from exc

    if not text.strip():
        raise ParseError("File is empty.")

    delimiter = options.delimiter or detect_delimiter(text, options.delimiter_candidates)
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
    try:
        parsed = build_parsed_file(reader, file_name=file_name, options=options)
    except csv.Error as exc:
        raise ParseError(f"Invalid CSV format: {exc}") from exc

    logger.debug(
        "Parsed CSV file=%s delimiter=%r columns=%s rows=%s truncated=%s",
        file_name,
        delimiter,
        len(parsed.headers),
        parsed.row_count,
        parsed.truncated,
    )
    return parsed


def detect_delimiter(text: str, candidates: tuple[str, ...]) -> str:
    """
    Guess the delimiter from a sample; fall back to a comma.
    """

    sample = text[:_SNIFF_SAMPLE_CHARS]
    try:
        return csv.Sniffer().sniff(sample, delimiters="".join(candidates)).delimiter
    except csv.Error:
        return ","
