"""
tests/test_decomposition.py

Pytest unit tests for demand decomposition, campaign impact and categories.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import pytest

from retail_insights.clients.decomposition_client import DecompositionClient
from retail_insights.config import DecompositionSettings
from retail_insights.errors import NOT_AUTHENTICATED_MESSAGE
from retail_insights.schemas.decomposition import DecompositionAnalysisRequest, DecompositionAnalysisResponse
from retail_insights.services.decomposition_service import (
    ANALYSIS_FAILED_MESSAGE,
    ANALYSIS_TIMEOUT_MESSAGE,
    ANALYZE_FAILED_MESSAGE,
    EXPORT_COLUMNS,
    MISSING_RESULTS_MESSAGE,
    ChangeType,
    DecompositionFilters,
    DecompositionService,
    SortOptions,
    export_csv,
    export_file_name,
    export_frame,
    filter_and_sort_results,
)
from tests.conftest import make_response

ANALYZE_PATH = "/datasets/4/demand-decomposition"
STATUS_PATH = "/demand-decomposition/11/status"


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def analysis_body(analysis_id: str = "a-1") -> dict[str, Any]:
    return {
        "dataset_id": 4,
        "analysis_id": analysis_id,
        "request_id": 11,
        "target_parameters": {
            "upc": "001",
            "store_id": 7,
            "category": "Pasta",
            "brand": "Acme",
            "time_period": {"start_time": "2024-01-01T00:00:00", "end_time": "2024-02-01T00:00:00"},
        },
        "baseline_demand": {"total_units": 100, "total_revenue": 250.0, "average_weekly_units": 25},
        "campaign_demand": {"total_units": 130, "total_revenue": 310.0, "average_weekly_units": 32.5},
        "decomposition_analysis": {
            "seasonality": {
                "name": "Seasonality",
                "description": "Weekly pattern",
                "percentage_change": 4.0,
                "absolute_change": 10,
                "confidence_level": "medium",
            },
            "promotion": {
                "name": "Promotion",
                "description": "Feature and display",
                "percentage_change": 12.5,
                "absolute_change": 30,
                "confidence_level": "high",
            },
            "cannibalization": {
                "name": "Cannibalization",
                "description": "Sister items",
                "percentage_change": -6.0,
                "absolute_change": -15,
                "confidence_level": "low",
            },
        },
        "summary": {"total_change_percentage": 30.0, "net_incremental_units": 30, "campaign_effectiveness": "high"},
        "metadata": {"analysis_date": "2024-02-02", "campaign_name": "Spring", "engine": "v2"},
    }


def make_request(**overrides: Any) -> DecompositionAnalysisRequest:
    values: dict[str, Any] = {
        "upc": "001",
        "store_id": 7,
        "category": "Pasta",
        "brand": "Acme",
        "start_time": datetime(2024, 1, 1),
        "end_time": datetime(2024, 2, 1),
    }
    values.update(overrides)
    return DecompositionAnalysisRequest(**values)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings() -> DecompositionSettings:
    return DecompositionSettings(
        cache_ttl_seconds=1800.0,
        cache_max_entries=2,
        poll_interval_seconds=3.0,
        poll_timeout_seconds=5.0,
    )


@pytest.fixture()
def service(backend, settings: DecompositionSettings, clock: FakeClock) -> DecompositionService:
    return DecompositionService(DecompositionClient(backend), settings=settings, clock=clock, sleep=clock.sleep)


@pytest.fixture()
def analysis() -> DecompositionAnalysisResponse:
    return DecompositionAnalysisResponse.model_validate(analysis_body())


class TestRequestValidation:
    def test_empty_request_lists_every_missing_field(self) -> None:
        assert DecompositionAnalysisRequest(upc="   ").validation_errors() == [
            "UPC is required",
            "Valid store ID is required",
            "Category is required",
            "Brand is required",
            "Start time is required",
            "End time is required",
        ]

    def test_end_must_follow_start(self) -> None:
        request = make_request(start_time=datetime(2024, 2, 1), end_time=datetime(2024, 2, 1))

        assert request.validation_errors() == ["End time must be after start time"]

    def test_invalid_request_never_reaches_backend(self, service: DecompositionService, fake_http) -> None:
        result = service.analyze(4, make_request(brand="", store_id=-1))

        assert not result.success
        assert result.error == "Valid store ID is required, Brand is required"
        assert fake_http.calls == []

    def test_cache_key_marks_missing_campaign(self) -> None:
        assert make_request().cache_key.endswith("_no_campaign")
        assert make_request(campaign_id=9).cache_key.endswith("_9")


class TestAnalyze:
    def test_posts_iso_times_and_parses_envelope(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, {"success": True, "message": "ok", "payload": analysis_body()})

        result = service.analyze(4, make_request())

        assert result.success
        assert result.data.analysis_id == "a-1"
        assert result.data.campaign_demand.total_units == 130
        assert set(result.data.decomposition_analysis) == {"seasonality", "promotion", "cannibalization"}
        assert fake_http.calls[0].kwargs["json"] == {
            "upc": "001",
            "store_id": 7,
            "category": "Pasta",
            "brand": "Acme",
            "start_time": "2024-01-01T00:00:00",
            "end_time": "2024-02-01T00:00:00",
        }

    def test_repeat_request_is_served_from_cache(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, analysis_body())

        first = service.analyze(4, make_request())
        second = service.analyze(4, make_request())
        service.analyze(4, make_request(), use_cache=False)

        assert second.data == first.data
        assert fake_http.paths("POST") == [ANALYZE_PATH, ANALYZE_PATH]

    def test_cache_entries_expire(self, service: DecompositionService, fake_http, clock: FakeClock) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, analysis_body())

        service.analyze(4, make_request())
        clock.now = 1800.0
        service.analyze(4, make_request())

        assert len(fake_http.paths("POST")) == 2

    def test_full_cache_drops_oldest_entry(self, service: DecompositionService, fake_http, clock: FakeClock) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, analysis_body())

        for offset, upc in enumerate(["001", "002", "003"]):
            clock.now = float(offset)
            service.analyze(4, make_request(upc=upc))

        assert len(service.cached_keys) == 2
        assert not any("_001_" in key for key in service.cached_keys)

        service.clear_cache()
        assert service.cached_keys == []

    def test_unsuccessful_envelope_is_not_cached(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, {"success": False, "message": "No transactions", "payload": None})

        result = service.analyze(4, make_request())

        assert result.error == ANALYZE_FAILED_MESSAGE
        assert service.cached_keys == []

    def test_malformed_response_fails(self, service: DecompositionService, fake_http) -> None:
        body = analysis_body()
        del body["analysis_id"]
        fake_http.add_json("POST", ANALYZE_PATH, body)

        assert service.analyze(4, make_request()).error == ANALYZE_FAILED_MESSAGE

    def test_rejected_token_reports_sign_in(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, {"detail": "expired"}, status_code=401)

        assert service.analyze(4, make_request()).error == NOT_AUTHENTICATED_MESSAGE

    def test_compare_runs_each_scenario(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("POST", ANALYZE_PATH, analysis_body())

        results = service.compare(4, {"baseline": make_request(), "broken": make_request(category="")})

        assert results["baseline"].success
        assert results["broken"].error == "Category is required"


class TestPolling:
    def test_poll_errors_are_logged_and_polling_continues(
        self,
        service: DecompositionService,
        fake_http,
        clock: FakeClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        fake_http.add(
            "GET",
            STATUS_PATH,
            make_response(400, {"message": "busy"}),
            make_response(200, {"request_id": 11, "dataset_id": 4, "status": "processing"}),
            make_response(200, {"request_id": 11, "dataset_id": 4, "status": "completed", "results": analysis_body()}),
        )

        with caplog.at_level(logging.WARNING, logger="retail_insights.services.decomposition_service"):
            result = service.wait_for_completion(11)

        assert result.success
        assert result.data.analysis_id == "a-1"
        assert clock.sleeps == [3.0, 3.0]
        assert "status poll failed" in caplog.text

    def test_failed_run(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("GET", STATUS_PATH, {"request_id": 11, "dataset_id": 4, "status": "failed"})

        assert service.wait_for_completion(11).error == ANALYSIS_FAILED_MESSAGE

    def test_completed_without_results(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json("GET", STATUS_PATH, {"request_id": 11, "dataset_id": 4, "status": "completed"})

        assert service.wait_for_completion(11).error == MISSING_RESULTS_MESSAGE

    def test_gives_up_after_timeout(self, service: DecompositionService, fake_http, clock: FakeClock) -> None:
        fake_http.add_json("GET", STATUS_PATH, {"request_id": 11, "dataset_id": 4, "status": "processing"})

        result = service.wait_for_completion(11)

        assert result.error == ANALYSIS_TIMEOUT_MESSAGE
        assert clock.sleeps == [3.0, 3.0]
        assert len(fake_http.paths("GET")) == 3

    def test_single_status_lookup(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json(
            "GET",
            STATUS_PATH,
            {"request_id": 11, "dataset_id": 4, "status": "processing", "campaign_name": "Spring"},
        )

        result = service.get_status(11)

        assert result.data.status == "processing"
        assert result.data.campaign_name == "Spring"


class TestHistoryAndCategories:
    def test_history_sends_filters(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json(
            "GET",
            "/datasets/4/demand-decomposition/history",
            {
                "dataset_id": 4,
                "requests": [
                    {
                        "request_id": 11,
                        "target_parameters": {
                            "upc": "001",
                            "store_id": 7,
                            "category": "Pasta",
                            "brand": "Acme",
                            "start_time": "2024-01-01",
                            "end_time": "2024-02-01",
                        },
                        "status": "completed",
                    }
                ],
                "total_requests": 1,
                "filters_applied": {"status": "completed"},
            },
        )

        result = service.get_history(4, status="completed", limit=5)
        service.get_history(4)

        assert result.data.total_requests == 1
        assert result.data.requests[0].target_parameters.period_label == "2024-01-01 to 2024-02-01"
        assert fake_http.calls[0].kwargs["params"] == {"status": "completed", "limit": 5}
        assert fake_http.calls[1].kwargs["params"] is None

    def test_categories_and_initialization(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json(
            "GET",
            "/decomposition-categories",
            {
                "categories": [
                    {
                        "category_id": 1,
                        "name": "Seasonality",
                        "code_name": "seasonality",
                        "characteristics": {"time_period": "weekly"},
                    }
                ],
                "total_categories": 1,
                "description": "Demand drivers",
            },
        )
        fake_http.add_json("POST", "/decomposition-categories", {"message": "created", "total_categories": 8})

        categories = service.get_categories()
        initialized = service.initialize_categories()

        assert categories.data.categories[0].code_name == "seasonality"
        assert initialized.data.total_categories == 8


class TestCampaignImpact:
    def test_posts_targets(self, service: DecompositionService, fake_http) -> None:
        fake_http.add_json(
            "POST",
            "/campaigns/9/impact-analysis",
            {
                "campaign_id": 9,
                "campaign_name": "Spring",
                "aggregate_metrics": {"total_targets_analyzed": 1, "successful_analyses": 1},
                "target_analyses": [
                    {
                        "target_index": 0,
                        "target": {"upc": "001", "store_id": 7, "category": "Pasta", "brand": "Acme"},
                        "analysis": analysis_body(),
                    }
                ],
            },
        )

        result = service.analyze_campaign_impact(
            9,
            [{"upc": "001", "store_id": 7, "category": "Pasta", "brand": "Acme"}],
            datetime(2024, 1, 1),
            datetime(2024, 2, 1),
        )

        assert result.success
        assert result.data.aggregate_metrics.successful_analyses == 1
        assert result.data.target_analyses[0].analysis.analysis_id == "a-1"
        assert fake_http.calls[0].kwargs["json"]["start_time"] == "2024-01-01T00:00:00"

    def test_invalid_target_fails_locally(self, service: DecompositionService, fake_http) -> None:
        result = service.analyze_campaign_impact(
            9,
            [{"upc": "001", "store_id": 0, "category": "Pasta", "brand": "Acme"}],
            datetime(2024, 1, 1),
            datetime(2024, 2, 1),
        )

        assert "targets.0.store_id" in result.error
        assert fake_http.calls == []

    def test_requires_targets_and_ordered_period(self, service: DecompositionService, fake_http) -> None:
        empty = service.analyze_campaign_impact(9, [], datetime(2024, 1, 1), datetime(2024, 2, 1))
        reversed_period = service.analyze_campaign_impact(
            9,
            [{"upc": "001", "store_id": 7, "category": "Pasta", "brand": "Acme"}],
            datetime(2024, 2, 1),
            datetime(2024, 1, 1),
        )

        assert empty.error.startswith("targets")
        assert reversed_period.error == "End time must be after start time"
        assert fake_http.calls == []


class TestResultsView:
    def test_default_sort_is_largest_change_first(self, analysis: DecompositionAnalysisResponse) -> None:
        keys = [key for key, _ in filter_and_sort_results(analysis)]

        assert keys == ["promotion", "seasonality", "cannibalization"]

    def test_filters(self, analysis: DecompositionAnalysisResponse) -> None:
        positive = filter_and_sort_results(analysis, DecompositionFilters(change_type=ChangeType.POSITIVE))
        negative = filter_and_sort_results(analysis, DecompositionFilters(change_type=ChangeType.NEGATIVE))
        large = filter_and_sort_results(analysis, DecompositionFilters(minimum_change=5.0))
        high = filter_and_sort_results(analysis, DecompositionFilters(confidence_level="high"))

        assert [key for key, _ in positive] == ["promotion", "seasonality"]
        assert [key for key, _ in negative] == ["cannibalization"]
        assert [key for key, _ in large] == ["promotion", "cannibalization"]
        assert [key for key, _ in high] == ["promotion"]

    def test_sort_by_confidence_and_name(self, analysis: DecompositionAnalysisResponse) -> None:
        by_confidence = filter_and_sort_results(analysis, sort=SortOptions("confidence_level", "asc"))
        by_name = filter_and_sort_results(analysis, sort=SortOptions("name", "asc"))
        unknown = filter_and_sort_results(analysis, sort=SortOptions("created_at", "asc"))

        assert [result.confidence_level for _, result in by_confidence] == ["low", "medium", "high"]
        assert [result.name for _, result in by_name] == ["Cannibalization", "Promotion", "Seasonality"]
        assert [key for key, _ in unknown] == ["seasonality", "promotion", "cannibalization"]

    def test_export(self, analysis: DecompositionAnalysisResponse) -> None:
        frame = export_frame(analysis)
        csv_text = export_csv(analysis, filter_and_sort_results(analysis, DecompositionFilters(confidence_level="low")))

        assert list(frame.columns) == list(EXPORT_COLUMNS)
        assert len(frame) == 3
        assert frame.loc[0, "category_name"] == "Promotion"
        assert frame.loc[0, "campaign_period"] == "2024-01-01T00:00:00 to 2024-02-01T00:00:00"
        assert frame.loc[0, "campaign_name"] == "Spring"
        assert csv_text.splitlines()[0] == ",".join(EXPORT_COLUMNS)
        assert len(csv_text.splitlines()) == 2
        assert export_file_name(analysis) == "decomposition_analysis_a-1.csv"
