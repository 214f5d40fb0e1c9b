from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Optional, Sequence

import requests

from .completion import CompletionOptions, CompletionResult
from .config import LocalLLMSettings


class LocalLLMCompletion:
    """Completion backend for an OpenAI-compatible HTTP API (e.g., LM Studio).

    Expected base URL: http://localhost:1234/v1
    Endpoint used:     POST {base_url}/chat/completions
    """

    def __init__(self, settings: LocalLLMSettings, log):
        self._settings = settings
        self._logger = log
        self._model: Optional[str] = None

    def complete(self, images: Sequence[Path], prompt: str, options: CompletionOptions) -> CompletionResult:
        timeout = options.timeout_seconds or self._settings.timeout_seconds
        try:
            content: list[dict[str, Any]] = [
                {"type": "image_url", "image_url": {"url": self._image_as_data_url(path)}} for path in images
            ]
            content.append({"type": "text", "text": prompt})

            payload: dict[str, Any] = {
                "model": self._resolve_model(),
                "temperature": options.temperature,
                "max_tokens": options.max_output_tokens,
                "stream": False,
                "messages": [{"role": "user", "content": content}],
            }
            primary = payload
            if options.expect_json:
                primary = dict(payload)
                primary["response_format"] = {"type": "json_object"}

            res = self._post_with_fallback(primary=primary, fallback=payload, timeout=timeout)
        except requests.Timeout as exc:
            self._logger.warning("Local LLM call timed out after %.1fs", timeout)
            return CompletionResult.timed_out(str(exc))
        except (requests.RequestException, OSError) as exc:
            self._logger.warning("Local LLM request failed: %s", exc)
            return CompletionResult.failure(str(exc))

        if res.status_code >= 400:
            self._logger.warning("Local LLM HTTP %s: %s", res.status_code, res.text[:200])
            return CompletionResult.failure(f"HTTP {res.status_code}")

        try:
            data = res.json()
        except ValueError as exc:
            self._logger.warning("Local LLM returned non-JSON body: %s", exc)
            return CompletionResult.failure("invalid response body")
        return CompletionResult.success(self._message_text(data))

    @staticmethod
    def _message_text(data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        choices = data.get("choices") or [{}]
        text = ((choices[0] if isinstance(choices[0], dict) else {}).get("message") or {}).get("content")

        if isinstance(text, list):
            # Some servers return structured content; join the text chunks.
            parts = [
                str(item.get("text") or "") for item in text if isinstance(item, dict) and item.get("type") == "text"
            ]
            text = "\n".join(p for p in parts if p)

        return text if isinstance(text, str) else ""

    def _resolve_model(self) -> str:
        if self._model:
            return self._model

        configured = (self._settings.model or "").strip()
        if configured and configured.lower() not in {"local-model", "auto"}:
            self._model = configured
            return configured

        # Auto-detect via the OpenAI-compatible models endpoint.
        self._model = configured or "local-model"
        try:
            url = f"{self._settings.base_url.rstrip('/')}/models"
            res = requests.get(url, timeout=min(10.0, self._settings.timeout_seconds))
            if res.status_code >= 400:
                self._logger.warning("Local LLM models discovery failed (HTTP %s)", res.status_code)
                return self._model

            models = res.json().get("data")
            if isinstance(models, list) and models and isinstance(models[0], dict) and models[0].get("id"):
                self._model = str(models[0]["id"])
                self._logger.info("Auto-selected LOCAL_LLM_MODEL=%s", self._model)
        except (requests.RequestException, ValueError) as exc:
            self._logger.warning("Local LLM models discovery failed: %s", exc)

        return self._model

    def _post_with_fallback(
        self, *, primary: dict[str, Any], fallback: dict[str, Any], timeout: float
    ) -> requests.Response:
        url = f"{self._settings.base_url}/chat/completions"
        headers = {"Content-Type": "application/json"}
        if self._settings.api_key:
            headers["Authorization"] = f"Bearer {self._settings.api_key}"

        res = requests.post(url, headers=headers, json=primary, timeout=timeout)
        if res.status_code in {400, 422} and primary is not fallback:
            # Likely an unsupported field (response_format). Retry once without it.
            res = requests.post(url, headers=headers, json=fallback, timeout=timeout)
        return res

    @staticmethod
    def _image_as_data_url(image_path: Path) -> str:
        encoded = base64.b64encode(Path(image_path).read_bytes()).decode("ascii")
        return f"data:image/png;base64,{encoded}"
