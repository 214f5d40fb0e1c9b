from __future__ import annotations

import random
import re
import time
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Sequence

import google.generativeai as genai
from PIL import Image

from .completion import CompletionOptions, CompletionResult
from .config import GeminiSettings


class GeminiCompletion:
    def __init__(self, settings: GeminiSettings, log, timeout_seconds: float = 30.0):
        self._settings = settings
        self._logger = log
        self._timeout_seconds = timeout_seconds
        genai.configure(api_key=settings.api_key)
        self._model = genai.GenerativeModel(settings.model)

    def complete(self, images: Sequence[Path], prompt: str, options: CompletionOptions) -> CompletionResult:
        generation_config = {
            "max_output_tokens": options.max_output_tokens,
            "temperature": options.temperature,
        }
        if options.expect_json:
            generation_config["response_mime_type"] = "application/json"
        timeout = options.timeout_seconds or self._timeout_seconds
        try:
            response = self._generate_with_retry(
                prompt=prompt,
                image_paths=list(images),
                generation_config=generation_config,
                timeout=timeout,
            )
            return CompletionResult.success(response.text or "")
        except Exception as exc:
            if self._is_timeout(exc):
                self._logger.warning("Gemini call timed out after %.1fs", timeout)
                return CompletionResult.timed_out(str(exc))
            self._logger.warning("Gemini call failed: %s", exc)
            return CompletionResult.failure(str(exc))

    def _generate_with_retry(
        self,
        *,
        prompt: str,
        image_paths: list[Path],
        generation_config: dict[str, Any],
        timeout: float,
    ):
        max_retries = self._settings.max_retries
        for attempt in range(max_retries + 1):
            try:
                with ExitStack() as stack:
                    contents: list[Any] = [stack.enter_context(Image.open(path)) for path in image_paths]
                    contents.append(prompt)
                    return self._model.generate_content(
                        contents,
                        generation_config=generation_config,
                        request_options={"timeout": timeout},
                    )
            except Exception as exc:
                if not self._is_rate_limited(exc) or attempt >= max_retries:
                    raise

                wait_seconds = self._compute_retry_wait_seconds(exc, attempt)
                wait_seconds = max(0.0, wait_seconds + max(0.0, self._settings.retry_buffer_seconds))
                self._logger.warning(
                    "Gemini rate limit hit (attempt %s/%s). Waiting %.1fs then retrying...",
                    attempt + 1,
                    max_retries + 1,
                    wait_seconds,
                )
                time.sleep(wait_seconds)
        raise RuntimeError("Gemini generate_content failed unexpectedly")

    def _is_rate_limited(self, exc: Exception) -> bool:
        from google.api_core.exceptions import ResourceExhausted

        if isinstance(exc, ResourceExhausted):
            return True
        message = str(exc)
        return "429" in message or "Quota exceeded" in message or "rate limit" in message.lower()

    def _is_timeout(self, exc: Exception) -> bool:
        from google.api_core.exceptions import DeadlineExceeded

        if isinstance(exc, (DeadlineExceeded, TimeoutError)):
            return True
        message = str(exc).lower()
        return "deadline" in message or "timed out" in message

    def _compute_retry_wait_seconds(self, exc: Exception, attempt: int) -> float:
        # Prefer the server-suggested delay when the error carries one.
        match = re.search(r"Please retry in\s+([0-9]+(?:\.[0-9]+)?)s", str(exc))
        if match:
            return float(match.group(1))

        base = min(60.0, (2.0 ** attempt))
        return base + random.uniform(0.0, 1.0)
