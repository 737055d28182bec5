from __future__ import annotations

import json
from typing import Any, Callable, Optional

from packages.core.errors import NetworkError

Handler = Callable[[str, str, dict], Any]


def bundle(*resources: dict, total: Optional[int] = None) -> dict:
    return {
        "resourceType": "Bundle",
        "type": "searchset",
        "total": len(resources) if total is None else total,
        "entry": [{"resource": resource} for resource in resources],
    }


def patient(patient_id: str, given: str, family: str, **extra: Any) -> dict:
    resource = {
        "resourceType": "Patient",
        "id": patient_id,
        "name": [{"given": [given], "family": family}],
    }
    resource.update(extra)
    return resource


def condition(condition_id: str, text: str, patient_id: str, status: str = "active") -> dict:
    return {
        "resourceType": "Condition",
        "id": condition_id,
        "code": {"text": text},
        "clinicalStatus": {"coding": [{"code": status}]},
        "subject": {"reference": f"Patient/{patient_id}"},
    }


class FakeFetcher:
    """Stands in for ResourceFetcher; the handler decides each response or raises."""

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.calls: list[tuple[str, str, dict]] = []
        self.url_calls: list[str] = []

    def fetch(self, base_url: str, path: str, params: Optional[dict] = None) -> Any:
        params = dict(params or {})
        self.calls.append((base_url, path, params))
        return self.handler(base_url, path, params)

    def fetch_url(self, url: str, headers: Optional[dict] = None) -> Any:
        self.url_calls.append(url)
        raise NetworkError("proxy unreachable", url=url)

    def paths(self) -> list[str]:
        return [path for _base, path, _params in self.calls]


def unreachable(_base_url: str, path: str, _params: dict) -> Any:
    raise NetworkError(f"connection refused for {path}")


class FakeResponse:
    def __init__(self, body: Any, status: int = 200, content_type: str = "application/fhir+json") -> None:
        self.body = body if isinstance(body, bytes) else json.dumps(body).encode("utf-8")
        self.status = status
        self.headers = {"Content-Type": content_type}

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *_exc: Any) -> bool:
        return False

    def getcode(self) -> int:
        return self.status

    def read(self) -> bytes:
        return self.body
