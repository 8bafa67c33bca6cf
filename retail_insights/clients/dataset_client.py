"""
retail_insights/clients/dataset_client.py

Dataset master, file upload and listing endpoints.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from retail_insights.clients.base import BackendClient, unwrap_payload
from retail_insights.domain.dataset import Dataset, UploadedFile
from retail_insights.errors import BackendRequestError
from retail_insights.schemas.dataset import (
    CreateDatasetMasterRequest,
    DatasetListItem,
    DatasetMasterResponse,
    FileUploadResponse,
)

logger = logging.getLogger(__name__)

UPLOAD_PATHS: dict[str, str] = {
    "transaction": "transactions",
    "product_lookup": "productlookups",
    "causal_lookup": "causallookups",
}


class DatasetClient:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    def create_dataset_master(self, name: str, description: str | None = None) -> DatasetMasterResponse:
        request = CreateDatasetMasterRequest(name=name, description=description)
        body = self._backend.post_json("/datasets", payload=request.model_dump(exclude_none=True))
        return _parse(DatasetMasterResponse, unwrap_payload(body), "create dataset")

    def upload_transaction_file(self, dataset_id: int, file: UploadedFile) -> FileUploadResponse:
        return self._upload(dataset_id, "transaction", file)

    def upload_product_lookup_file(self, dataset_id: int, file: UploadedFile) -> FileUploadResponse:
        return self._upload(dataset_id, "product_lookup", file)

    def upload_causal_lookup_file(self, dataset_id: int, file: UploadedFile) -> FileUploadResponse:
        return self._upload(dataset_id, "causal_lookup", file)

    def _upload(self, dataset_id: int, file_type: str, file: UploadedFile) -> FileUploadResponse:
        path = f"/datasets/{dataset_id}/{UPLOAD_PATHS[file_type]}"
        logger.info(
            "Uploading file dataset_id=%s file_type=%s file_name=%s size_bytes=%s",
            dataset_id,
            file_type,
            file.file_name,
            file.size_bytes,
        )
        body = self._backend.post_file(
            path,
            file_name=file.file_name,
            content=file.content,
            content_type=file.content_type,
            fields={"datasetId": str(dataset_id)},
        )
        return _parse(FileUploadResponse, unwrap_payload(body), f"upload {file_type}")

    def list_datasets(self, user_id: str) -> list[Dataset]:
        body = unwrap_payload(self._backend.get_json(f"/users/{user_id}/datasets"))
        items = body.get("datasets", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise BackendRequestError("Dataset list response was malformed")
        return [_parse(DatasetListItem, item, "list datasets").to_dataset() for item in items]

    def get_dataset(self, dataset_id: int) -> Dataset:
        body = unwrap_payload(self._backend.get_json(f"/datasets/{dataset_id}"))
        return _parse(DatasetListItem, body, "get dataset").to_dataset()

    def delete_dataset(self, dataset_id: int) -> None:
        unwrap_payload(self._backend.delete(f"/datasets/{dataset_id}"))


def _parse(model, body, action: str):
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise BackendRequestError(f"Unexpected response to {action}") from exc
