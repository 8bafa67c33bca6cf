"""
retail_insights/services/ingestion_orchestrator.py

Four-step dataset creation: master record, then transaction, product lookup
and causal lookup uploads, strictly in that order.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from retail_insights.cache.stores import DatasetStore
from retail_insights.clients.dataset_client import DatasetClient
from retail_insights.domain.dataset import (
    CreateDatasetRequest,
    Dataset,
    DatasetFiles,
    ImportStatus,
    IngestionProgress,
    IngestionStep,
)
from retail_insights.errors import (
    NOT_AUTHENTICATED_MESSAGE,
    UNEXPECTED_ERROR_MESSAGE,
    AuthError,
    DatasetCreationError,
    OperationResult,
    RetailInsightsError,
    UploadStepError,
)
from retail_insights.logging_utils import log_event

logger = logging.getLogger(__name__)

CREATE_FAILED_MESSAGE = "Failed to create dataset"
CANCELLED_MESSAGE = "Dataset creation was cancelled"


@dataclass(frozen=True)
class UploadStep:
    step: str
    progress: int
    file_attr: str
    client_method: str
    pending_status: str
    confirmed_status: str
    running_message: str
    failure_message: str
    missing_message: str


UPLOAD_STEPS: tuple[UploadStep, ...] = (
    UploadStep(
        step=IngestionStep.UPLOADING_TRANSACTION,
        progress=25,
        file_attr="transaction",
        client_method="upload_transaction_file",
        pending_status=ImportStatus.IMPORTING_TRANSACTION,
        confirmed_status=ImportStatus.IMPORTING_PRODUCT_LOOKUP,
        running_message="Uploading transaction file...",
        failure_message="Failed to upload transaction file",
        missing_message="No transaction file selected",
    ),
    UploadStep(
        step=IngestionStep.UPLOADING_PRODUCT_LOOKUP,
        progress=50,
        file_attr="product_lookup",
        client_method="upload_product_lookup_file",
        pending_status=ImportStatus.IMPORTING_PRODUCT_LOOKUP,
        confirmed_status=ImportStatus.IMPORTING_CAUSAL_LOOKUP,
        running_message="Uploading product lookup file...",
        failure_message="Failed to upload product lookup file",
        missing_message="No product lookup file selected",
    ),
    UploadStep(
        step=IngestionStep.UPLOADING_CAUSAL_LOOKUP,
        progress=75,
        file_attr="causal_lookup",
        client_method="upload_causal_lookup_file",
        pending_status=ImportStatus.IMPORTING_CAUSAL_LOOKUP,
        confirmed_status=ImportStatus.IMPORT_COMPLETED,
        running_message="Uploading causal lookup file...",
        failure_message="Failed to upload causal lookup file",
        missing_message="No causal lookup file selected",
    ),
)

ProgressCallback = Callable[[IngestionProgress], None]


class IngestionOrchestrator:
    """
    Drives dataset creation and keeps the cached import status in step with
    what the backend has confirmed.

    Each upload starts only after the previous one succeeded. Failed steps
    are not retried; ``resume_dataset`` continues from the last confirmed
    status.
    """

    def __init__(self, *, client: DatasetClient, store: DatasetStore) -> None:
        self._client = client
        self._store = store

    def iter_create_dataset(
        self,
        request: CreateDatasetRequest,
        *,
        cancel_event: threading.Event | None = None,
        user_id: str | None = None,
    ) -> Iterator[IngestionProgress]:
        """
        Yield progress events while creating a dataset.

        The last event is ``completed`` or ``failed`` and carries the
        OperationResult in ``result``.
        """

        if _is_cancelled(cancel_event):
            yield _failed(None, CANCELLED_MESSAGE)
            return

        yield IngestionProgress(
            step=IngestionStep.CREATING_MASTER,
            progress=10,
            message="Creating dataset...",
        )
        try:
            dataset = self._create_master(request)
        except DatasetCreationError as exc:
            yield _failed(None, _failure_message(exc.__cause__, str(exc)))
            return
        except Exception:
            logger.exception("Unexpected failure creating dataset name=%s", request.name)
            yield _failed(None, UNEXPECTED_ERROR_MESSAGE)
            return

        self._store.put(dataset, user_id=user_id)
        log_event(logger, logging.INFO, "dataset_master_created", dataset_id=dataset.id, name=dataset.name)
        yield from self._run_uploads(dataset, request.files, cancel_event)

    def create_dataset(
        self,
        name: str,
        files: DatasetFiles,
        description: str | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
        user_id: str | None = None,
    ) -> OperationResult[Dataset]:
        request = CreateDatasetRequest(name=name, files=files, description=description)
        return _drain(
            self.iter_create_dataset(request, cancel_event=cancel_event, user_id=user_id),
            on_progress,
        )

    def iter_resume_dataset(
        self,
        dataset_id: int,
        files: DatasetFiles,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[IngestionProgress]:
        """
        Re-run only the uploads the backend has not yet confirmed.
        """

        view = self._store.get_for_id(dataset_id)
        if view.data is None:
            yield _failed(dataset_id, view.error or f"Dataset {dataset_id} not found")
            return
        yield from self._run_uploads(view.data, files, cancel_event)

    def resume_dataset(
        self,
        dataset_id: int,
        files: DatasetFiles,
        *,
        on_progress: ProgressCallback | None = None,
        cancel_event: threading.Event | None = None,
    ) -> OperationResult[Dataset]:
        return _drain(self.iter_resume_dataset(dataset_id, files, cancel_event=cancel_event), on_progress)

    def _create_master(self, request: CreateDatasetRequest) -> Dataset:
        try:
            master = self._client.create_dataset_master(request.name, request.description)
        except RetailInsightsError as exc:
            logger.error("Dataset master creation failed name=%s error=%s", request.name, exc)
            raise DatasetCreationError(CREATE_FAILED_MESSAGE) from exc
        return master.to_dataset()

    def _run_uploads(
        self,
        dataset: Dataset,
        files: DatasetFiles,
        cancel_event: threading.Event | None,
    ) -> Iterator[IngestionProgress]:
        current = dataset
        for step in pending_upload_steps(dataset):
            if _is_cancelled(cancel_event):
                log_event(logger, logging.INFO, "dataset_ingestion_cancelled", dataset_id=dataset.id, step=step.step)
                yield _failed(dataset.id, CANCELLED_MESSAGE)
                return
            if getattr(files, step.file_attr) is None:
                yield _failed(dataset.id, step.missing_message)
                return

            yield IngestionProgress(
                step=step.step,
                progress=step.progress,
                message=step.running_message,
                dataset_id=dataset.id,
            )
            try:
                self._upload(step, dataset.id, files)
            except UploadStepError as exc:
                yield _failed(dataset.id, _failure_message(exc.__cause__, str(exc)))
                return
            except Exception:
                logger.exception("Unexpected failure during step=%s dataset_id=%s", step.step, dataset.id)
                yield _failed(dataset.id, UNEXPECTED_ERROR_MESSAGE)
                return

            current = current.with_import_status(step.confirmed_status)
            current = self._store.advance_import_status(dataset.id, step.confirmed_status) or current
            log_event(
                logger,
                logging.INFO,
                "dataset_upload_confirmed",
                dataset_id=dataset.id,
                step=step.step,
                import_status=current.import_status,
            )

        yield IngestionProgress(
            step=IngestionStep.COMPLETED,
            progress=100,
            message="Dataset created successfully",
            dataset_id=dataset.id,
            result=OperationResult.ok(current),
        )

    def _upload(self, step: UploadStep, dataset_id: int, files: DatasetFiles) -> None:
        upload = getattr(self._client, step.client_method)
        try:
            upload(dataset_id, getattr(files, step.file_attr))
        except RetailInsightsError as exc:
            logger.error("Upload step failed step=%s dataset_id=%s error=%s", step.step, dataset_id, exc)
            raise UploadStepError(step.failure_message, step=step.step) from exc


def pending_upload_steps(dataset: Dataset) -> tuple[UploadStep, ...]:
    """
    Upload steps the backend has not yet confirmed for ``dataset``.
    """

    rank = ImportStatus.rank(dataset.import_status)
    return tuple(step for step in UPLOAD_STEPS if rank <= ImportStatus.rank(step.pending_status))


def _is_cancelled(cancel_event: threading.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()


def _failure_message(cause: BaseException | None, default: str) -> str:
    if isinstance(cause, AuthError):
        return NOT_AUTHENTICATED_MESSAGE
    return default


def _failed(dataset_id: int | None, message: str) -> IngestionProgress:
    return IngestionProgress(
        step=IngestionStep.FAILED,
        progress=0,
        message=message,
        dataset_id=dataset_id,
        result=OperationResult.failure(message),
    )


def _drain(events: Iterator[IngestionProgress], on_progress: ProgressCallback | None) -> OperationResult[Dataset]:
    result: OperationResult[Dataset] = OperationResult.failure(UNEXPECTED_ERROR_MESSAGE)
    for event in events:
        if on_progress is not None:
            try:
                on_progress(event)
            except Exception:  # noqa: BLE001
                logger.exception("Progress callback failed step=%s dataset_id=%s", event.step, event.dataset_id)
        if event.is_terminal:
            result = event.result
    return result
