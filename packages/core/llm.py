from __future__ import annotations

import json
import logging
import random
import time
import urllib.error
import urllib.request
from typing import Literal, Optional

from packages.core.errors import ProviderError

logger = logging.getLogger(__name__)

Provider = Literal["openai", "anthropic"]

DEFAULT_BASE_URLS = {
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
}
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1000
MAX_RETRIES = 5


def _read_http_error_body(error: urllib.error.HTTPError) -> str:
    try:
        body_bytes = error.read()
    except Exception:
        return ""
    try:
        return body_bytes.decode("utf-8", errors="replace")
    except Exception:
        return ""


def _provider_label(provider: str) -> str:
    return "Anthropic" if provider == "anthropic" else "OpenAI"


class LLMClient:
    def __init__(
        self,
        provider: Provider = "openai",
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unsupported LLM provider: {provider}")
        self.provider = provider
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[provider]
        self.base_url = (base_url or DEFAULT_BASE_URLS[provider]).rstrip("/")
        self.timeout = timeout

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _build_request(self, system: str, user: str) -> urllib.request.Request:
        if self.provider == "anthropic":
            url = f"{self.base_url}/messages"
            payload = {
                "model": self.model,
                "max_tokens": MAX_TOKENS,
                "system": system,
                "messages": [{"role": "user", "content": user}],
            }
            headers = {
                "x-api-key": self.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
                "Content-Type": "application/json",
            }
        else:
            url = f"{self.base_url}/chat/completions"
            payload = {
                "model": self.model,
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                "temperature": 0.1,
                "max_tokens": MAX_TOKENS,
            }
            headers = {
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            }
        return urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            headers=headers,
            method="POST",
        )

    def _extract_text(self, body: dict) -> str:
        if self.provider == "anthropic":
            blocks = body.get("content") or []
            return "".join(
                block.get("text", "") for block in blocks if isinstance(block, dict) and block.get("type") == "text"
            )
        return body["choices"][0]["message"]["content"]

    def complete(self, system: str, user: str) -> str:
        label = _provider_label(self.provider)
        if not self.api_key:
            raise ProviderError(f"{label} API key is not set")

        request = self._build_request(system, user)
        url = request.full_url
        for attempt in range(MAX_RETRIES + 1):
            try:
                with urllib.request.urlopen(request, timeout=self.timeout) as response:
                    status = response.getcode()
                    content_type = (
                        response.headers.get("Content-Type", "unknown")
                        if response.headers
                        else "unknown"
                    )
                    raw = response.read()
                text = raw.decode("utf-8", errors="replace")
                try:
                    body = json.loads(text)
                except ValueError as exc:
                    raise ProviderError(
                        f"{label} non-JSON response: "
                        f"status={status} content_type={content_type} url={url} "
                        f"body_preview={text[:500]}"
                    ) from exc
                try:
                    return self._extract_text(body)
                except (KeyError, IndexError, TypeError, AttributeError) as exc:
                    raise ProviderError(
                        f"{label} response missing completion text: url={url} body_preview={text[:500]}"
                    ) from exc
            except urllib.error.HTTPError as exc:
                body_text = _read_http_error_body(exc)
                status = getattr(exc, "code", "unknown")
                retry_after = None
                if exc.headers:
                    retry_after = exc.headers.get("Retry-After")
                if retry_after is not None:
                    try:
                        retry_after = float(retry_after)
                    except ValueError:
                        retry_after = None

                if status in {429, 503} and attempt < MAX_RETRIES:
                    backoff = 2**attempt
                    jitter = random.random() * 0.25
                    delay = retry_after if retry_after is not None else backoff
                    logger.info("%s returned %s; retrying in %.1fs", label, status, delay + jitter)
                    time.sleep(delay + jitter)
                    continue

                content_type = exc.headers.get("Content-Type", "unknown") if exc.headers else "unknown"
                preview = body_text.strip()[:500]
                message = (
                    f"{label} HTTPError: "
                    f"status={status} content_type={content_type} url={url} "
                    f"body_preview={preview}"
                )
                raise ProviderError(message) from exc
            except ProviderError:
                raise
            except Exception as exc:
                raise ProviderError(
                    f"{label} request failed: url={url} error={type(exc).__name__}: {exc}"
                ) from exc

        raise ProviderError("LLM request failed after retries")


__all__ = ["LLMClient", "Provider", "DEFAULT_MODELS"]
