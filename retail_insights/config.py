"""
retail_insights/config.py

Environment-driven settings for the backend client, upload parsing,
validation reporting and demand-decomposition analysis.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TypeVar

N = TypeVar("N", int, float)

DEFAULT_API_URL = "http://localhost:8000"
PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILENAMES: tuple[str, ...] = (".env", ".env.local")
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None
    key, separator, value = line.partition("=")
    key = key.strip()
    if not separator or not key:
        return None
    return key, value.strip().strip("\"'")


def load_env_files(root: Path | None = None) -> dict[str, str]:
    """
    Apply KEY=VALUE pairs from `.env` then `.env.local` under ``root``.

    Variables already set in the process win. Returns the pairs applied.
    """

    applied: dict[str, str] = {}
    for path in ((root or PROJECT_ROOT) / name for name in ENV_FILENAMES):
        if not path.is_file():
            continue
        for raw_line in path.read_text(encoding="utf-8").splitlines():
            pair = _parse_env_line(raw_line)
            if pair is None or pair[0] in os.environ:
                continue
            os.environ[pair[0]] = pair[1]
            applied[pair[0]] = pair[1]
    return applied


@lru_cache(maxsize=1)
def _env_files_loaded() -> bool:
    load_env_files()
    return True


def env_value(name: str) -> str | None:
    """
    Stripped value of ``name``; unset and blank both read as None.
    """

    _env_files_loaded()
    value = (os.getenv(name) or "").strip()
    return value or None


def env_str(name: str, default: str) -> str:
    return env_value(name) or default


def env_number(name: str, default: N, cast: Callable[[str], N]) -> N:
    value = env_value(name)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default


def env_flag(name: str, default: bool) -> bool:
    value = env_value(name)
    return default if value is None else value.lower() in _TRUTHY


@dataclass(frozen=True)
class BackendSettings:
    """
    HTTP behavior settings for the analytics backend.
    """

    base_url: str = DEFAULT_API_URL
    timeout_seconds: float = 15.0
    max_retries: int = 2
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class FileParserSettings:
    """
    Runtime settings for reading uploaded tabular files.
    """

    max_rows: int | None = None
    max_preview_rows: int = 5
    encoding: str = "utf-8-sig"
    delimiter: str | None = None


@dataclass(frozen=True)
class ValidationSettings:
    log_validation_issues: bool = True
    max_logged_issues: int = 50


@dataclass(frozen=True)
class DecompositionSettings:
    """
    Result caching and status polling for demand-decomposition requests.
    """

    cache_ttl_seconds: float = 30 * 60
    cache_max_entries: int = 50
    poll_interval_seconds: float = 3.0
    poll_timeout_seconds: float = 300.0


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    """
    Return cached backend settings from environment variables.
    """

    return BackendSettings(
        base_url=env_str("RETAIL_API_URL", DEFAULT_API_URL).rstrip("/"),
        timeout_seconds=max(1.0, env_number("RETAIL_API_TIMEOUT_SECONDS", 15.0, float)),
        max_retries=max(0, env_number("RETAIL_API_MAX_RETRIES", 2, int)),
        backoff_initial_seconds=max(0.1, env_number("RETAIL_API_BACKOFF_INITIAL_SECONDS", 0.5, float)),
        backoff_multiplier=max(1.0, env_number("RETAIL_API_BACKOFF_MULTIPLIER", 2.0, float)),
    )


@lru_cache(maxsize=1)
def get_file_parser_settings() -> FileParserSettings:
    """
    Return cached file parser settings; a row limit of 0 means unlimited.
    """

    max_rows = env_number("UPLOAD_MAX_ROWS", 0, int)
    return FileParserSettings(
        max_rows=max_rows if max_rows > 0 else None,
        max_preview_rows=max(1, env_number("UPLOAD_MAX_PREVIEW_ROWS", 5, int)),
        encoding=env_str("UPLOAD_ENCODING", "utf-8-sig"),
        delimiter=env_value("UPLOAD_DELIMITER"),
    )


@lru_cache(maxsize=1)
def get_validation_settings() -> ValidationSettings:
    return ValidationSettings(
        log_validation_issues=env_flag("VALIDATION_LOG_ISSUES", True),
        max_logged_issues=max(1, env_number("VALIDATION_MAX_LOGGED_ISSUES", 50, int)),
    )


@lru_cache(maxsize=1)
def get_decomposition_settings() -> DecompositionSettings:
    return DecompositionSettings(
        cache_ttl_seconds=max(0.0, env_number("DECOMPOSITION_CACHE_TTL_SECONDS", 1800.0, float)),
        cache_max_entries=max(1, env_number("DECOMPOSITION_CACHE_MAX_ENTRIES", 50, int)),
        poll_interval_seconds=max(0.1, env_number("DECOMPOSITION_POLL_INTERVAL_SECONDS", 3.0, float)),
        poll_timeout_seconds=max(1.0, env_number("DECOMPOSITION_POLL_TIMEOUT_SECONDS", 300.0, float)),
    )
