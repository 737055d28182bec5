import http.client
from io import BytesIO
from urllib.error import HTTPError, URLError
import urllib.request

import pytest

from packages.core.errors import HttpError, NetworkError
from packages.fhir.fetcher import ResourceFetcher, build_url
from tests.fhir_fakes import FakeResponse, bundle


def test_build_url_repeats_list_params() -> None:
    url = build_url(
        "https://fhir.test/baseR4/",
        "Patient",
        {"birthdate": ["ge1967-07-01", "le1967-12-31"], "_count": 10},
    )
    assert url == "https://fhir.test/baseR4/Patient?birthdate=ge1967-07-01&birthdate=le1967-12-31&_count=10"


def test_build_url_skips_none_and_encodes_modifiers() -> None:
    url = build_url("https://fhir.test/baseR4", "Condition", {"code:text": "diabetes", "patient": None})
    assert url == "https://fhir.test/baseR4/Condition?code%3Atext=diabetes"
    assert build_url("https://fhir.test/baseR4", "metadata") == "https://fhir.test/baseR4/metadata"


def test_fetch_sends_fhir_accept_header(monkeypatch: pytest.MonkeyPatch) -> None:
    seen = {}

    def fake_urlopen(request, timeout=None):
        seen["url"] = request.full_url
        seen["accept"] = request.get_header("Accept")
        seen["timeout"] = timeout
        return FakeResponse(bundle())

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    payload = ResourceFetcher(timeout=3).fetch("https://fhir.test/baseR4", "Patient", {"_count": 10})

    assert payload["resourceType"] == "Bundle"
    assert seen == {
        "url": "https://fhir.test/baseR4/Patient?_count=10",
        "accept": "application/fhir+json",
        "timeout": 3,
    }


def test_fetch_maps_http_error_to_status(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise HTTPError(
            url=request.full_url,
            code=404,
            msg="Not Found",
            hdrs={"Content-Type": "application/fhir+json"},
            fp=BytesIO(b'{"resourceType":"OperationOutcome"}'),
        )

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(HttpError) as excinfo:
        ResourceFetcher().fetch("https://fhir.test/baseR4", "Patient/missing")

    assert excinfo.value.status == 404
    assert "HTTP 404" in str(excinfo.value)
    assert excinfo.value.url == "https://fhir.test/baseR4/Patient/missing"


def test_fetch_maps_connection_failure_to_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_urlopen(request, timeout=None):
        raise URLError("Name or service not known")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(NetworkError) as excinfo:
        ResourceFetcher().fetch("https://nowhere.test", "Patient")
    assert "Name or service not known" in str(excinfo.value)


def test_fetch_rejects_non_json_body(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        urllib.request,
        "urlopen",
        lambda request, timeout=None: FakeResponse(b"<html>proxy error</html>", content_type="text/html"),
    )
    with pytest.raises(NetworkError) as excinfo:
        ResourceFetcher().fetch("https://fhir.test/baseR4", "Patient")
    assert "non-JSON" in str(excinfo.value)


def test_fetch_maps_truncated_body_to_network_error(monkeypatch: pytest.MonkeyPatch) -> None:
    class TruncatedResponse(FakeResponse):
        def read(self) -> bytes:
            raise http.client.IncompleteRead(b'{"resourceType": "Bun', 512)

    monkeypatch.setattr(
        urllib.request, "urlopen", lambda request, timeout=None: TruncatedResponse(bundle())
    )
    with pytest.raises(NetworkError) as excinfo:
        ResourceFetcher().fetch("https://fhir.test/baseR4", "Patient")
    assert "IncompleteRead" in str(excinfo.value)
