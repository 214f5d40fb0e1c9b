from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .models import DetectionConfig


@dataclass(frozen=True)
class CaptureSettings:
    interval_seconds: int
    capture_root: Path
    data_dir: Path


@dataclass(frozen=True)
class CompletionSettings:
    backend: str
    timeout_seconds: float


@dataclass(frozen=True)
class GeminiSettings:
    api_key: str
    model: str
    max_tokens: int
    temperature: float
    max_retries: int = 5
    retry_buffer_seconds: float = 0.5


@dataclass(frozen=True)
class LocalLLMSettings:
    base_url: str
    api_key: str | None
    model: str
    max_tokens: int
    temperature: float
    timeout_seconds: float


@dataclass(frozen=True)
class LoggingSettings:
    directory: Path
    level: str = "INFO"


@dataclass(frozen=True)
class OutputSettings:
    summary_dir: Path


@dataclass(frozen=True)
class AppSettings:
    timezone: ZoneInfo
    capture: CaptureSettings
    detection: DetectionConfig
    completion: CompletionSettings
    gemini: GeminiSettings | None
    local_llm: LocalLLMSettings
    role_summary: str
    logging: LoggingSettings
    output: OutputSettings

    @property
    def database_path(self) -> Path:
        return self.capture.data_dir / "tasklens.db"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    dotenv_path = Path(__file__).resolve().parents[1] / ".env"
    load_dotenv(dotenv_path=dotenv_path, override=False, encoding="utf-8-sig")

    timezone = ZoneInfo(os.getenv("TIMEZONE", "Asia/Tokyo"))

    capture = CaptureSettings(
        interval_seconds=int(os.getenv("CAPTURE_INTERVAL_SECONDS", "10")),
        capture_root=Path(os.getenv("CAPTURE_ROOT", "data/captures")).resolve(),
        data_dir=Path(os.getenv("DATA_DIR", "data")).resolve(),
    )

    detection = DetectionConfig(
        min_task_duration=int(os.getenv("MIN_TASK_DURATION_SECONDS", "60")),
        idle_threshold=int(os.getenv("IDLE_THRESHOLD_SECONDS", "300")),
        app_switch_debounce=int(os.getenv("APP_SWITCH_DEBOUNCE_SECONDS", "30")),
        context_window=int(os.getenv("CONTEXT_WINDOW", "5")),
    )

    completion = CompletionSettings(
        backend=os.getenv("COMPLETION_BACKEND", "gemini").strip().lower(),
        timeout_seconds=float(os.getenv("COMPLETION_TIMEOUT_SECONDS", "30")),
    )
    if completion.backend not in {"gemini", "local"}:
        raise RuntimeError(f"Unsupported COMPLETION_BACKEND '{completion.backend}' (expected gemini or local)")

    gemini = None
    if completion.backend == "gemini":
        gemini = GeminiSettings(
            api_key=_require("GEMINI_API_KEY"),
            model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            max_tokens=int(os.getenv("GEMINI_MAX_TOKENS", "256")),
            temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.4")),
            max_retries=int(os.getenv("GEMINI_MAX_RETRIES", "5")),
            retry_buffer_seconds=float(os.getenv("GEMINI_RETRY_BUFFER_SECONDS", "0.5")),
        )

    local_llm = LocalLLMSettings(
        base_url=os.getenv("LOCAL_LLM_BASE_URL", "http://localhost:1234/v1").rstrip("/"),
        api_key=os.getenv("LOCAL_LLM_API_KEY") or None,
        model=os.getenv("LOCAL_LLM_MODEL", "auto"),
        max_tokens=int(os.getenv("LOCAL_LLM_MAX_TOKENS", "256")),
        temperature=float(os.getenv("LOCAL_LLM_TEMPERATURE", "0.4")),
        timeout_seconds=completion.timeout_seconds,
    )

    logging_settings = LoggingSettings(
        directory=Path(os.getenv("LOG_DIR", "logs")).resolve(),
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    output_settings = OutputSettings(
        summary_dir=Path(os.getenv("SUMMARY_OUTPUT_DIR", "output")).resolve(),
    )

    return AppSettings(
        timezone=timezone,
        capture=capture,
        detection=detection,
        completion=completion,
        gemini=gemini,
        local_llm=local_llm,
        role_summary=os.getenv("ROLE_SUMMARY", "Unknown role"),
        logging=logging_settings,
        output=output_settings,
    )


def _require(key: str) -> str:
    value = os.getenv(key)
    if not value:
        raise RuntimeError(f"Environment variable '{key}' is required but missing")
    return value
