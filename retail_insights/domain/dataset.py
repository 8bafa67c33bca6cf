"""
retail_insights/domain/dataset.py

Dataset entities and ingestion progress models.
"""

from __future__ import annotations

import io
import mimetypes
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any


class ImportStatus:
    IMPORTING_TRANSACTION = "importing_transaction"
    IMPORTING_PRODUCT_LOOKUP = "importing_product_lookup"
    IMPORTING_CAUSAL_LOOKUP = "importing_causal_lookup"
    IMPORT_COMPLETED = "import_completed"

    ORDER: tuple[str, ...] = (
        IMPORTING_TRANSACTION,
        IMPORTING_PRODUCT_LOOKUP,
        IMPORTING_CAUSAL_LOOKUP,
        IMPORT_COMPLETED,
    )

    @classmethod
    def rank(cls, status: str) -> int:
        try:
            return cls.ORDER.index(status)
        except ValueError as exc:
            raise ValueError(f"Unknown import status: {status!r}") from exc


class AnalysisStatus:
    NOT_STARTED = "not_started"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"


class IngestionStep:
    CREATING_MASTER = "creating_master"
    UPLOADING_TRANSACTION = "uploading_transaction"
    UPLOADING_PRODUCT_LOOKUP = "uploading_product_lookup"
    UPLOADING_CAUSAL_LOOKUP = "uploading_causal_lookup"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Dataset:
    """
    Client-side view of one dataset; the backend holds the authoritative copy.
    """

    id: int
    name: str
    import_status: str
    analysis_status: str
    created_at: datetime
    updated_at: datetime
    description: str | None = None

    def with_import_status(self, status: str, *, updated_at: datetime | None = None) -> "Dataset":
        """
        Return a copy advanced to ``status``; never moves backwards.
        """

        if ImportStatus.rank(status) <= ImportStatus.rank(self.import_status):
            return self
        return replace(self, import_status=status, updated_at=updated_at or self.updated_at)


@dataclass(frozen=True)
class UploadedFile:
    """
    In-memory file selected by the user for upload.
    """

    file_name: str
    content: bytes
    content_type: str | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadedFile":
        file_path = Path(path)
        content_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            file_name=file_path.name,
            content=file_path.read_bytes(),
            content_type=content_type,
        )

    def open(self) -> io.BytesIO:
        return io.BytesIO(self.content)

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class DatasetFiles:
    """
    Files for the upload steps; a resume only needs the unconfirmed ones.
    """

    transaction: UploadedFile | None = None
    product_lookup: UploadedFile | None = None
    causal_lookup: UploadedFile | None = None


@dataclass(frozen=True)
class CreateDatasetRequest:
    name: str
    files: DatasetFiles
    description: str | None = None


@dataclass(frozen=True)
class IngestionProgress:
    """
    One progress event emitted by the ingestion orchestrator.

    ``result`` is only set on the terminal ``completed`` or ``failed`` event.
    """

    step: str
    progress: int
    message: str
    dataset_id: int | None = None
    result: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.step in {IngestionStep.COMPLETED, IngestionStep.FAILED}
