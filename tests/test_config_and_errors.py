from __future__ import annotations

import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from retail_insights import config
from retail_insights.errors import (
    AuthError,
    BackendRequestError,
    NetworkError,
    OperationResult,
    ParseError,
    describe_error,
    is_retryable_status,
    user_message_for_status,
)
from retail_insights.logging_utils import log_event


class TestBackendSettings(unittest.TestCase):
    def tearDown(self) -> None:
        config.get_backend_settings.cache_clear()
        config.get_file_parser_settings.cache_clear()

    def test_reads_environment(self) -> None:
        env = {
            "RETAIL_API_URL": "https://api.example.com/",
            "RETAIL_API_MAX_RETRIES": "5",
            "RETAIL_API_TIMEOUT_SECONDS": "not-a-number",
        }
        with mock.patch.dict("os.environ", env):
            config.get_backend_settings.cache_clear()
            settings = config.get_backend_settings()

        self.assertEqual(settings.base_url, "https://api.example.com")
        self.assertEqual(settings.max_retries, 5)
        self.assertEqual(settings.timeout_seconds, 15.0)

    def test_parser_row_limit_zero_means_unlimited(self) -> None:
        with mock.patch.dict("os.environ", {"UPLOAD_MAX_ROWS": "0", "UPLOAD_DELIMITER": " "}):
            config.get_file_parser_settings.cache_clear()
            settings = config.get_file_parser_settings()

        self.assertIsNone(settings.max_rows)
        self.assertIsNone(settings.delimiter)


    def test_decomposition_settings_bounds(self) -> None:
        env = {"DECOMPOSITION_CACHE_MAX_ENTRIES": "0", "DECOMPOSITION_POLL_INTERVAL_SECONDS": "2.5"}
        with mock.patch.dict("os.environ", env):
            config.get_decomposition_settings.cache_clear()
            settings = config.get_decomposition_settings()
        config.get_decomposition_settings.cache_clear()

        self.assertEqual(settings.cache_max_entries, 1)
        self.assertEqual(settings.poll_interval_seconds, 2.5)
        self.assertEqual(settings.cache_ttl_seconds, 1800.0)


class TestEnvFiles(unittest.TestCase):
    def test_local_file_and_process_environment_precedence(self) -> None:
        with tempfile.TemporaryDirectory() as directory, mock.patch.dict("os.environ", {"KEEP_ME": "process"}):
            root = Path(directory)
            (root / ".env").write_text(
                '# comment\nRI_TEST_URL="http://a.test"\nKEEP_ME=file\nnot a pair\n',
                encoding="utf-8",
            )
            (root / ".env.local").write_text("RI_TEST_URL=http://b.test\nRI_TEST_FLAG= yes \n", encoding="utf-8")

            applied = config.load_env_files(root)

            self.assertEqual(applied, {"RI_TEST_URL": "http://a.test", "RI_TEST_FLAG": "yes"})
            self.assertEqual(os.environ["KEEP_ME"], "process")
            self.assertTrue(config.env_flag("RI_TEST_FLAG", False))
            self.assertEqual(config.env_number("RI_TEST_URL", 3, int), 3)


class TestErrorDescriptions(unittest.TestCase):
    def test_auth_errors_use_generic_message(self) -> None:
        processed = describe_error(AuthError("token expired", status_code=401))

        self.assertEqual(processed.user_message, "User not authenticated")
        self.assertEqual(processed.code, "401")
        self.assertFalse(processed.retryable)

    def test_backend_errors_follow_status(self) -> None:
        processed = describe_error(BackendRequestError("boom", status_code=429))

        self.assertEqual(processed.user_message, "Too many requests. Please wait a moment and try again.")
        self.assertTrue(processed.retryable)

    def test_network_errors_suggest_retry(self) -> None:
        processed = describe_error(NetworkError("down"))

        self.assertIn("check your connection", processed.user_message)
        self.assertTrue(processed.retryable)

    def test_parse_errors_are_shown_verbatim(self) -> None:
        self.assertEqual(describe_error(ParseError("File is empty.")).user_message, "File is empty.")

    def test_unexpected_errors_are_hidden(self) -> None:
        processed = describe_error(KeyError("secret"))

        self.assertEqual(processed.user_message, "An unexpected error occurred")

    def test_status_helpers(self) -> None:
        self.assertEqual(user_message_for_status(404), "The requested resource was not found.")
        self.assertTrue(is_retryable_status(503))
        self.assertFalse(is_retryable_status(400))

    def test_operation_result(self) -> None:
        self.assertEqual(OperationResult.ok(3), OperationResult(success=True, data=3))
        self.assertEqual(OperationResult.failure("no").error, "no")


class TestLogEvent(unittest.TestCase):
    def test_emits_sorted_json(self) -> None:
        logger = logging.getLogger("retail_insights.tests")
        with self.assertLogs(logger, level="INFO") as captured:
            log_event(logger, logging.INFO, "file_validated", rows=3, file_name="a.csv")

        self.assertIn('{"event": "file_validated", "file_name": "a.csv", "rows": 3}', captured.output[0])


if __name__ == "__main__":
    unittest.main()
