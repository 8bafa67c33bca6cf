"""
retail_insights/domain/tabular.py

Domain models produced by the file parsers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

# None marks an empty cell; every other value is the trimmed raw text.
RawCell = str | None
ParsedRow = Mapping[str, RawCell]

DEFAULT_DELIMITER_CANDIDATES: tuple[str, ...] = (",", "\t", "|", ";")


class FileType:
    TRANSACTION = "transaction"
    PRODUCT_LOOKUP = "product_lookup"
    CAUSAL_LOOKUP = "causal_lookup"

    ALL: tuple[str, ...] = (TRANSACTION, PRODUCT_LOOKUP, CAUSAL_LOOKUP)


@dataclass(frozen=True)
class FileParserOptions:
    """
    Options controlling how an uploaded file is read.
    """

    delimiter: str | None = None
    has_header: bool = True
    max_rows: int | None = None
    max_preview_rows: int = 5
    encoding: str = "utf-8-sig"
    delimiter_candidates: tuple[str, ...] = DEFAULT_DELIMITER_CANDIDATES


@dataclass(frozen=True)
class ParsedFile:
    """
    Header names and raw cell values read from one uploaded file.
    """

    headers: tuple[str, ...]
    rows: tuple[ParsedRow, ...]
    file_name: str = ""
    truncated: bool = False
    preview_size: int = field(default=5, repr=False)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def preview(self) -> tuple[ParsedRow, ...]:
        return self.rows[: self.preview_size]
