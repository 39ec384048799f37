"""
Minimal OpenRouter chat-completions client.

Uses only urllib so a single request/response exchange needs no extra
dependencies. Non-success responses are mapped onto the GenerationError
hierarchy; nothing is retried here and no timeout is imposed unless one is
configured.
"""
from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.request
from typing import Any, Dict, List, Mapping, Optional, Sequence

from flashy.errors import (
    AuthenticationError,
    EmptyResponseError,
    InsufficientBalanceError,
    ProviderNetworkError,
    RateLimitError,
    UpstreamError,
    UpstreamUnavailableError,
)
from flashy.provider.catalog import ModelOption

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

_STATUS_ERRORS = {
    401: AuthenticationError,
    403: AuthenticationError,
    402: InsufficientBalanceError,
    429: RateLimitError,
    500: UpstreamUnavailableError,
    502: UpstreamUnavailableError,
    503: UpstreamUnavailableError,
    504: UpstreamUnavailableError,
}

_STATUS_MESSAGES = {
    AuthenticationError: "Invalid API key",
    InsufficientBalanceError: "Insufficient credits",
    RateLimitError: "Rate limited by provider",
    UpstreamUnavailableError: "Provider temporarily unavailable",
}


def classify_http_error(status: int, body: str = "") -> UpstreamError:
    """Build the error for a non-success response.

    The upstream ``error.message`` is preferred when the body carries one.
    """
    error_cls = _STATUS_ERRORS.get(status, UpstreamError)
    message = f"{_STATUS_MESSAGES.get(error_cls, 'OpenRouter API failed')} ({status})"
    try:
        parsed = json.loads(body)
    except (json.JSONDecodeError, TypeError):
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
        upstream = parsed["error"].get("message")
        if upstream:
            message = f"{upstream} ({status})"
    return error_cls(message, status=status)


class OpenRouterClient:
    def __init__(
            self,
            api_key: str,
            base_url: str = DEFAULT_BASE_URL,
            referer: Optional[str] = None,
            title: str = "Flashy",
            timeout: Optional[float] = None,
    ) -> None:
        if not api_key:
            raise AuthenticationError("API Key is required")
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.referer = referer
        self.title = title
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": self.title,
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        return headers

    def request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(url, data=data, headers=self._headers(), method=method)
        kwargs = {} if self.timeout is None else {"timeout": self.timeout}

        try:
            with urllib.request.urlopen(req, **kwargs) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp is not None else ""
            logger.error(f"API error response: {e.code} {body[:500]}")
            raise classify_http_error(e.code, body) from e
        except (urllib.error.URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            logger.error(f"Network/fetch error: {reason}")
            raise ProviderNetworkError(f"Network error: {reason}") from e

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise UpstreamError(f"Invalid JSON from provider: {e}") from e

    def complete(
            self,
            model: str,
            messages: Sequence[Mapping[str, str]],
            temperature: float = 0.7,
            max_tokens: Optional[int] = None,
    ) -> str:
        """Run one chat completion and return the completion text."""
        payload: Dict[str, Any] = {
            "model": model,
            "messages": list(messages),
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        logger.info("Calling OpenRouter API...", extra={"model": model})
        start = time.perf_counter()
        data = self.request("POST", "chat/completions", payload)
        elapsed = time.perf_counter() - start

        choice = (data.get("choices") or [{}])[0] if isinstance(data, dict) else {}
        finish_reason = choice.get("finish_reason")
        text = (choice.get("message") or {}).get("content")
        logger.info(
            f"Response received in {elapsed:.1f}s",
            extra={"usage": data.get("usage") if isinstance(data, dict) else None, "finish_reason": finish_reason},
        )
        if finish_reason == "length":
            logger.warning("Completion hit the token limit; output is probably truncated")

        if not text:
            logger.error(f"No content in response: {json.dumps(data)[:500]}")
            raise EmptyResponseError("No response content from model")

        logger.debug(f"Raw response (first 300 chars): {text[:300]}")
        return text

    def list_models(self) -> List[ModelOption]:
        """Fetch the provider's model list."""
        data = self.request("GET", "models")
        entries = data.get("data", []) if isinstance(data, dict) else []
        models: List[ModelOption] = []
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            model_id = str(entry["id"])
            pricing = entry.get("pricing") or {}
            free = model_id.endswith(":free") or (
                str(pricing.get("prompt", "")) == "0" and str(pricing.get("completion", "")) == "0"
            )
            models.append(ModelOption(
                id=model_id,
                name=str(entry.get("name") or model_id),
                provider=model_id.split("/", 1)[0],
                free=free,
            ))
        return models
