"""Streamlit frontend for the retail insights client."""

from __future__ import annotations

import hashlib
from datetime import datetime, time

import pandas as pd
import streamlit as st

from retail_insights.context import ClientContext, build_context
from retail_insights.domain.dataset import Dataset, DatasetFiles, ImportStatus, IngestionProgress, UploadedFile
from retail_insights.domain.tabular import FileType
from retail_insights.errors import RetailInsightsError, describe_error
from retail_insights.logging_utils import configure_logging
from retail_insights.schemas.decomposition import DecompositionAnalysisRequest
from retail_insights.services.analytics_service import VARIABLES_BY_TABLE, ProcessedNumericalStats
from retail_insights.services.decomposition_service import export_csv, export_file_name, export_frame
from retail_insights.services.file_validation_service import (
    FileValidationOutcome,
    error_summary,
    group_issues_by_type,
    status_label,
)
from retail_insights.services.ingestion_orchestrator import pending_upload_steps

st.set_page_config(page_title="Retail Insights", page_icon="RI", layout="wide")

FILE_LABELS = {
    FileType.TRANSACTION: "Transaction file",
    FileType.PRODUCT_LOOKUP: "Product lookup file",
    FileType.CAUSAL_LOOKUP: "Causal lookup file",
}


@st.cache_resource(show_spinner=False)
def _configure_logging_once() -> bool:
    configure_logging()
    return True


def _context() -> ClientContext:
    """One client context per browser session."""
    if "client_context" not in st.session_state:
        st.session_state.client_context = build_context()
    return st.session_state.client_context


def _init_state() -> None:
    defaults = {
        "validation_outcomes": {},
        "validation_hashes": {},
        "ingestion_error": None,
        "ingestion_message": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _validate_selected(slot: str, upload, file_type: str | None = None) -> FileValidationOutcome | None:
    """Re-validate only when the selected file content changes."""
    file_type = file_type or slot
    if upload is None:
        st.session_state.validation_outcomes.pop(slot, None)
        st.session_state.validation_hashes.pop(slot, None)
        return None

    data = upload.getvalue()
    digest = hashlib.sha256(data).hexdigest()
    if st.session_state.validation_hashes.get(slot) != digest:
        uploaded = UploadedFile(file_name=upload.name, content=data, content_type=upload.type)
        outcome = _context().file_validation.validate_upload(uploaded, file_type)
        st.session_state.validation_outcomes[slot] = outcome
        st.session_state.validation_hashes[slot] = digest
    return st.session_state.validation_outcomes[slot]


def _render_outcome(outcome: FileValidationOutcome) -> None:
    if outcome.error is not None:
        st.error(outcome.error)
        return
    result = outcome.result
    if result is None:
        return

    label = status_label(result)
    if result.is_valid:
        st.success(f"{label}: {error_summary(result)}")
    else:
        st.error(f"{label}: {error_summary(result)}")

    if result.summary is not None:
        summary = result.summary
        cols = st.columns(4)
        cols[0].metric("Rows", summary.total_rows)
        cols[1].metric("Valid rows", summary.valid_rows)
        cols[2].metric("Errors", summary.error_count)
        cols[3].metric("Column coverage", f"{summary.column_coverage:.0f}%")

    for issue_type, issues in group_issues_by_type(result.errors).items():
        with st.expander(f"{issue_type} ({len(issues)})"):
            for issue in issues[:10]:
                st.write(issue.message)
    if result.warnings:
        with st.expander(f"Warnings ({len(result.warnings)})"):
            for issue in result.warnings[:10]:
                st.write(issue.message)

    if outcome.parsed_file is not None and outcome.parsed_file.preview:
        st.dataframe(pd.DataFrame([dict(row) for row in outcome.parsed_file.preview]), use_container_width=True)


def _render_sign_in(context: ClientContext) -> None:
    st.subheader("Sign in")
    token = st.text_input("Identity token", type="password")
    if st.button("Sign in", disabled=not token):
        try:
            context.sessions.exchange(token)
            st.rerun()
        except RetailInsightsError as exc:
            st.error(describe_error(exc).user_message)


def _render_dataset_creation(context: ClientContext) -> None:
    st.subheader("Create dataset")
    name = st.text_input("Dataset name")
    description = st.text_area("Description", height=80)

    uploads: dict[str, UploadedFile] = {}
    all_valid = True
    for file_type, label in FILE_LABELS.items():
        upload = st.file_uploader(label, type=["csv", "xlsx", "xls"], key=f"upload_{file_type}")
        outcome = _validate_selected(file_type, upload)
        if outcome is None:
            all_valid = False
            continue
        _render_outcome(outcome)
        all_valid = all_valid and outcome.is_valid
        uploads[file_type] = UploadedFile(file_name=upload.name, content=upload.getvalue(), content_type=upload.type)

    if not st.button("Create dataset", disabled=not (all_valid and name.strip())):
        return

    files = DatasetFiles(
        transaction=uploads[FileType.TRANSACTION],
        product_lookup=uploads[FileType.PRODUCT_LOOKUP],
        causal_lookup=uploads[FileType.CAUSAL_LOOKUP],
    )
    progress_bar = st.progress(0, text="Starting...")

    def on_progress(event: IngestionProgress) -> None:
        if not event.is_terminal or event.result.success:
            progress_bar.progress(event.progress, text=event.message)

    session = context.sessions.current
    result = context.ingestion.create_dataset(
        name.strip(),
        files,
        description.strip() or None,
        on_progress=on_progress,
        user_id=session.user_id if session else None,
    )
    if result.success:
        st.session_state.ingestion_error = None
        st.session_state.ingestion_message = f"Dataset '{result.data.name}' created."
    else:
        st.session_state.ingestion_error = result.error
        st.session_state.ingestion_message = None


def _render_resume(context: ClientContext, incomplete: list[Dataset]) -> None:
    """Upload only the files the backend has not confirmed yet."""
    with st.expander(f"Resume upload ({len(incomplete)} incomplete)"):
        by_id = {dataset.id: dataset for dataset in incomplete}
        dataset_id = st.selectbox(
            "Dataset",
            list(by_id),
            format_func=lambda value: f"{by_id[value].name} ({by_id[value].import_status})",
            key="resume_dataset_id",
        )
        dataset = by_id[dataset_id]

        files: dict[str, UploadedFile] = {}
        for step in pending_upload_steps(dataset):
            file_type = step.file_attr
            upload = st.file_uploader(
                FILE_LABELS[file_type],
                type=["csv", "xlsx", "xls"],
                key=f"resume_{dataset_id}_{file_type}",
            )
            outcome = _validate_selected(f"resume_{file_type}", upload, file_type)
            if outcome is None:
                continue
            _render_outcome(outcome)
            if outcome.is_valid:
                files[step.file_attr] = UploadedFile(
                    file_name=upload.name,
                    content=upload.getvalue(),
                    content_type=upload.type,
                )

        ready = len(files) == len(pending_upload_steps(dataset))
        if not st.button("Resume upload", disabled=not ready, key="resume_button"):
            return

        progress_bar = st.progress(0, text="Resuming...")
        outcome = context.ingestion.resume_dataset(
            dataset_id,
            DatasetFiles(**files),
            on_progress=lambda event: progress_bar.progress(event.progress, text=event.message),
        )
        if outcome.success:
            st.success(f"Dataset '{outcome.data.name}' import completed.")
        else:
            st.error(outcome.error)


def _render_datasets(context: ClientContext) -> None:
    st.subheader("Datasets")
    refresh = st.button("Refresh")
    result = context.datasets.fetch_datasets(refresh=refresh)
    if not result.success:
        st.error(result.error)
        return
    if not result.data:
        st.info("No datasets yet.")
        return

    frame = pd.DataFrame(
        [
            {
                "id": dataset.id,
                "name": dataset.name,
                "import_status": dataset.import_status,
                "analysis_status": dataset.analysis_status,
                "created_at": dataset.created_at,
            }
            for dataset in result.data
        ]
    )
    st.dataframe(frame, use_container_width=True)

    incomplete = [dataset for dataset in result.data if dataset.import_status != ImportStatus.IMPORT_COMPLETED]
    if incomplete:
        _render_resume(context, incomplete)

    dataset_id = st.selectbox("Explore dataset", [dataset.id for dataset in result.data])
    table = st.selectbox("Table", list(VARIABLES_BY_TABLE))
    variable = st.selectbox("Variable", [item.key for item in VARIABLES_BY_TABLE[table]])
    if st.button("Show statistics"):
        stats = context.analytics.variable_statistics(dataset_id, table, variable)
        if not stats.success:
            st.error(stats.error)
        elif isinstance(stats.data, ProcessedNumericalStats):
            st.json({"mean": stats.data.mean, "median": stats.data.median, "mode": stats.data.mode})
            st.bar_chart(stats.data.histogram_frame(), x="value", y="count")
        else:
            st.json({"mode": stats.data.mode, "count": stats.data.count, "unique": stats.data.unique})
            st.bar_chart(stats.data.pie_frame(), x="name", y="value")

    _render_decomposition(context, dataset_id)


def _render_decomposition(context: ClientContext, dataset_id: int) -> None:
    st.subheader("Demand decomposition")
    cols = st.columns(4)
    upc = cols[0].text_input("UPC", key="decomp_upc")
    store_id = cols[1].number_input("Store ID", min_value=0, step=1, key="decomp_store")
    category = cols[2].text_input("Category", key="decomp_category")
    brand = cols[3].text_input("Brand", key="decomp_brand")
    start, end = st.columns(2)
    start_date = start.date_input("Start", value=None, key="decomp_start")
    end_date = end.date_input("End", value=None, key="decomp_end")
    if not st.button("Analyze demand"):
        return

    request = DecompositionAnalysisRequest(
        upc=upc,
        store_id=int(store_id),
        category=category,
        brand=brand,
        start_time=datetime.combine(start_date, time.min) if start_date else None,
        end_time=datetime.combine(end_date, time.min) if end_date else None,
    )
    result = context.decomposition.analyze(dataset_id, request)
    if not result.success:
        st.error(result.error)
        return
    st.metric("Total change", f"{result.data.summary.total_change_percentage:.1f}%")
    st.dataframe(export_frame(result.data), use_container_width=True)
    st.download_button(
        "Export CSV",
        export_csv(result.data),
        file_name=export_file_name(result.data),
        mime="text/csv",
    )


_configure_logging_once()
_init_state()
context = _context()

st.title("Retail Insights")

if not context.sessions.is_authenticated:
    _render_sign_in(context)
    st.stop()

with st.sidebar:
    st.caption(f"Signed in as {context.sessions.current.user_id}")
    if st.button("Sign out"):
        context.sessions.clear()
        st.session_state.pop("client_context", None)
        st.rerun()

_render_dataset_creation(context)
if st.session_state.ingestion_error:
    st.error(st.session_state.ingestion_error)
elif st.session_state.ingestion_message:
    st.success(st.session_state.ingestion_message)

_render_datasets(context)
