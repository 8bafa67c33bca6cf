"""
retail_insights/parsers/excel_parser.py

Workbook parsing for uploaded XLSX/XLS files.
"""

from __future__ import annotations

import io
import logging
from typing import Any

import pandas as pd

from retail_insights.domain.tabular import FileParserOptions, ParsedFile
from retail_insights.errors import ParseError
from retail_insights.parsers.rows import build_parsed_file

logger = logging.getLogger(__name__)

EXCEL_READ_ERROR_MESSAGE = "Failed to parse Excel file. Please check that it is a valid workbook."


def parse_excel_bytes(
    data: bytes,
    *,
    file_name: str,
    options: FileParserOptions | None = None,
) -> ParsedFile:
    """
    Parse the first worksheet of a workbook into headers and raw string rows.
    """

    options = options or FileParserOptions()
    if not data:
        raise ParseError("File is empty.")

    try:
        frame = pd.read_excel(
            io.BytesIO(data),
            sheet_name=0,
            header=None,
            dtype=str,
            keep_default_na=False,
        )
    except Exception as exc:  # noqa: BLE001
        # Engines (openpyxl, xlrd, zipfile) each raise their own error types.
        logger.warning("Excel read failed file=%s error_type=%s error=%s", file_name, type(exc).__name__, exc)
        raise ParseError(EXCEL_READ_ERROR_MESSAGE) from exc

    if frame.empty:
        raise ParseError("Excel file is empty.")

    raw_rows = ([_normalize(value) for value in row] for row in frame.itertuples(index=False, name=None))
    parsed = build_parsed_file(raw_rows, file_name=file_name, options=options)

    logger.debug(
        "Parsed Excel file=%s columns=%s rows=%s truncated=%s",
        file_name,
        len(parsed.headers),
        parsed.row_count,
        parsed.truncated,
    )
    return parsed


def _normalize(value: Any) -> Any:
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    return value
