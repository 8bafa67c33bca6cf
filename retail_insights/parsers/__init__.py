"""
retail_insights/parsers package.

Dispatches uploaded files to the CSV or Excel parser by extension.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from retail_insights.domain.dataset import UploadedFile
from retail_insights.domain.tabular import FileParserOptions, ParsedFile
from retail_insights.errors import ParseError
from retail_insights.parsers.csv_parser import detect_delimiter, parse_csv_bytes
from retail_insights.parsers.excel_parser import parse_excel_bytes

CSV_EXTENSIONS = frozenset({"csv"})
EXCEL_EXTENSIONS = frozenset({"xlsx", "xls"})


def file_extension(file_name: str) -> str | None:
    suffix = Path(file_name).suffix
    return suffix[1:].lower() if suffix else None


def is_supported_file(file_name: str) -> bool:
    return file_extension(file_name) in CSV_EXTENSIONS | EXCEL_EXTENSIONS


def file_kind_label(file_name: str) -> str | None:
    extension = file_extension(file_name)
    if extension in CSV_EXTENSIONS:
        return "CSV"
    if extension in EXCEL_EXTENSIONS:
        return "Excel"
    return None


def parse_file(
    source: UploadedFile | str | Path | BinaryIO,
    *,
    file_name: str | None = None,
    options: FileParserOptions | None = None,
) -> ParsedFile:
    """
    Read an uploaded file into a ParsedFile.

    ``source`` may be an UploadedFile, a filesystem path, or a binary handle
    (in which case ``file_name`` is required to pick the parser).
    """

    name, data = _read_source(source, file_name)
    extension = file_extension(name)
    if extension is None:
        raise ParseError("File has no extension.")
    if extension in CSV_EXTENSIONS:
        return parse_csv_bytes(data, file_name=name, options=options)
    if extension in EXCEL_EXTENSIONS:
        return parse_excel_bytes(data, file_name=name, options=options)
    raise ParseError(f"Unsupported file format: {extension}. Please use CSV or Excel files.")


def _read_source(
    source: UploadedFile | str | Path | BinaryIO,
    file_name: str | None,
) -> tuple[str, bytes]:
    if isinstance(source, UploadedFile):
        return file_name or source.file_name, source.content
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            return file_name or path.name, path.read_bytes()
        except OSError as exc:
            raise ParseError(f"Failed to read file '{path.name}'.") from exc
    if file_name is None:
        file_name = getattr(source, "name", None)
        if not isinstance(file_name, str):
            raise ParseError("A file name is required to parse an open file handle.")
        file_name = Path(file_name).name
    try:
        return file_name, source.read()
    except OSError as exc:
        raise ParseError(f"Failed to read file '{file_name}'.") from exc


__all__ = [
    "detect_delimiter",
    "file_extension",
    "file_kind_label",
    "is_supported_file",
    "parse_csv_bytes",
    "parse_excel_bytes",
    "parse_file",
]
