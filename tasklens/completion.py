"""Vision/text completion contract shared by the LLM backends.

Backends never raise to their callers: every call returns a
:class:`CompletionResult` whose status says whether text came back, the call
timed out, or it failed for another reason.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence


class CompletionStatus(str, Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    FAILED = "failed"


@dataclass(frozen=True)
class CompletionOptions:
    temperature: float = 0.4
    max_output_tokens: int = 256
    timeout_seconds: Optional[float] = None
    expect_json: bool = False


@dataclass(frozen=True)
class CompletionResult:
    status: CompletionStatus
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is CompletionStatus.OK

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(CompletionStatus.OK, text=text or "")

    @classmethod
    def timed_out(cls, error: str = "timed out") -> "CompletionResult":
        return cls(CompletionStatus.TIMEOUT, error=error)

    @classmethod
    def failure(cls, error: str) -> "CompletionResult":
        return cls(CompletionStatus.FAILED, error=error)


class CompletionService(Protocol):
    def complete(
        self, images: Sequence[Path], prompt: str, options: CompletionOptions
    ) -> CompletionResult: ...


def safe_complete(
    service: CompletionService, images: Sequence[Path], prompt: str, options: CompletionOptions, log
) -> CompletionResult:
    """Call ``service`` and turn anything it raises into a failed result."""
    try:
        result = service.complete(images, prompt, options)
    except TimeoutError as exc:
        log.warning("Completion timed out: %s", exc)
        return CompletionResult.timed_out(str(exc))
    except Exception as exc:
        log.warning("Completion service raised %s: %s", type(exc).__name__, exc)
        return CompletionResult.failure(str(exc))
    if not isinstance(result, CompletionResult):
        return CompletionResult.success(str(result or ""))
    return result


_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Pull the first JSON object out of a model response, or None."""
    cleaned = (text or "").strip()
    if not cleaned:
        return None
    if cleaned.startswith("```"):
        cleaned = cleaned.split("\n", 1)[1] if "\n" in cleaned else ""
        if "```" in cleaned:
            cleaned = cleaned.split("```", 1)[0]
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(cleaned)
        if not match:
            return None
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return payload if isinstance(payload, dict) else None


def build_completion(settings, log) -> CompletionService:
    """Instantiate the backend selected by ``COMPLETION_BACKEND``."""
    if settings.completion.backend == "local":
        from .local_llm_client import LocalLLMCompletion

        log.info("Completion backend: local (%s)", settings.local_llm.base_url)
        return LocalLLMCompletion(settings.local_llm, log)

    from .gemini_client import GeminiCompletion

    log.info("Completion backend: gemini (%s)", settings.gemini.model)
    return GeminiCompletion(settings.gemini, log, timeout_seconds=settings.completion.timeout_seconds)
