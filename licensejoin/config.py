"""
licensejoin/config.py

Environment-driven run configuration for license join runs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

MODE_LIVE = "live"
MODE_REPLAY = "replay"
_ALLOWED_MODES = {MODE_LIVE, MODE_REPLAY}


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = _project_root()
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


def _get_int_env(name: str, default: int) -> int:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def resolve_path(raw_path: str) -> str:
    """
    Resolve a relative path against the project root.
    """

    candidate = Path(raw_path)
    if candidate.is_absolute():
        return str(candidate)
    return str((_project_root() / candidate).resolve())


def normalize_mode(raw: str) -> str:
    """
    Validate the live/replay mode flag.

    Anything other than 'live' or 'replay' raises RuntimeError so a typo
    never silently hits the remote board.
    """

    mode = raw.strip().lower()
    if mode not in _ALLOWED_MODES:
        raise RuntimeError(
            f"LICENSE_JOIN_MODE '{raw.strip()}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_MODES)}."
        )
    return mode


@dataclass(frozen=True)
class LicenseJoinSettings:
    """
    Runtime settings for one license join run.
    """

    mode: str = MODE_REPLAY
    dispatch_delay_seconds: float = 1.0
    api_token: str | None = None
    user_agent: str = "LicenseJoinBot/1.0 (+https://example.com/bot)"
    cdc_url: str = "https://data.example.gov/resource/licenses.json"
    cdc_page_size: int = 1000
    board_base_url: str = "https://board.example.gov"
    timeout_seconds: float = 15.0
    archive_dir: str = "data/archive"
    zones_path: str | None = None
    output_path: str = "data/licenses.csv"
    log_path: str | None = None
    log_level: str = "INFO"

    @property
    def is_live(self) -> bool:
        return self.mode == MODE_LIVE

    def validate(self) -> None:
        """
        Check cross-field requirements before a run starts.
        """

        normalize_mode(self.mode)
        if self.is_live and not self.api_token:
            raise RuntimeError("LICENSE_JOIN_API_TOKEN is required in live mode.")


@lru_cache(maxsize=1)
def get_license_join_settings() -> LicenseJoinSettings:
    """
    Return cached license join settings from environment variables.
    """

    load_env_files()
    zones_path = _get_optional_str_env("LICENSE_JOIN_ZONES_PATH")
    log_path = _get_optional_str_env("LICENSE_JOIN_LOG_PATH")
    return LicenseJoinSettings(
        mode=normalize_mode(_get_str_env("LICENSE_JOIN_MODE", MODE_REPLAY)),
        dispatch_delay_seconds=max(
            0.0,
            _get_float_env("LICENSE_JOIN_DISPATCH_DELAY_SECONDS", 1.0),
        ),
        api_token=_get_optional_str_env("LICENSE_JOIN_API_TOKEN"),
        user_agent=_get_str_env(
            "LICENSE_JOIN_USER_AGENT",
            "LicenseJoinBot/1.0 (+https://example.com/bot)",
        ),
        cdc_url=_get_str_env(
            "LICENSE_JOIN_CDC_URL",
            "https://data.example.gov/resource/licenses.json",
        ),
        cdc_page_size=max(1, _get_int_env("LICENSE_JOIN_CDC_PAGE_SIZE", 1000)),
        board_base_url=_get_str_env(
            "LICENSE_JOIN_BOARD_BASE_URL",
            "https://board.example.gov",
        ).rstrip("/"),
        timeout_seconds=max(1.0, _get_float_env("LICENSE_JOIN_TIMEOUT_SECONDS", 15.0)),
        archive_dir=resolve_path(_get_str_env("LICENSE_JOIN_ARCHIVE_DIR", "data/archive")),
        zones_path=resolve_path(zones_path) if zones_path else None,
        output_path=resolve_path(_get_str_env("LICENSE_JOIN_OUTPUT_PATH", "data/licenses.csv")),
        log_path=resolve_path(log_path) if log_path else None,
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
    )
