from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Mapping, Optional, Sequence, Union

from packages.core.config import DEFAULT_TIMEOUT
from packages.core.errors import HttpError, NetworkError

logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"

ParamValue = Union[str, int, Sequence[Union[str, int]]]


def build_url(base_url: str, path: str, params: Optional[Mapping[str, ParamValue]] = None) -> str:
    """Join base URL and resource path; list values become repeated query parameters."""
    url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
    if not params:
        return url
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(item)) for item in value)
        else:
            pairs.append((key, str(value)))
    if not pairs:
        return url
    return f"{url}?{urllib.parse.urlencode(pairs)}"


def _read_http_error_body(error: urllib.error.HTTPError) -> str:
    try:
        body_bytes = error.read()
    except Exception:
        return ""
    try:
        return body_bytes.decode("utf-8", errors="replace")
    except Exception:
        return ""


class ResourceFetcher:
    """One HTTP GET per call; failures are typed and never retried here."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    def fetch(
        self,
        base_url: str,
        path: str,
        params: Optional[Mapping[str, ParamValue]] = None,
    ) -> Any:
        return self.fetch_url(build_url(base_url, path, params))

    def fetch_url(self, url: str, headers: Optional[Mapping[str, str]] = None) -> Any:
        request_headers = {"Accept": FHIR_JSON}
        if headers:
            request_headers.update(headers)
        request = urllib.request.Request(url, headers=request_headers, method="GET")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status = response.getcode()
                raw = response.read()
        except urllib.error.HTTPError as exc:
            preview = _read_http_error_body(exc).strip()[:200]
            reason = exc.reason if isinstance(exc.reason, str) else str(exc.reason)
            message = f"{reason} {preview}".strip() if preview else reason
            raise HttpError(exc.code, message, url=url) from exc
        except urllib.error.URLError as exc:
            raise NetworkError(f"request failed: {exc.reason}", url=url) from exc
        except (TimeoutError, OSError, ValueError, http.client.HTTPException) as exc:
            raise NetworkError(f"request failed: {type(exc).__name__}: {exc}", url=url) from exc

        if status is not None and not 200 <= status < 300:
            raise HttpError(status, "unexpected status", url=url)

        text = raw.decode("utf-8", errors="replace")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise NetworkError(
                f"non-JSON response: body_preview={text[:200]!r}", url=url
            ) from exc
        logger.debug("GET %s -> %s", url, status)
        return payload


__all__ = ["ResourceFetcher", "build_url", "FHIR_JSON"]
