import json
import urllib.request

import pytest

from apps.client import query_client
from apps.client.query_client import build_payload, format_pretty
from tests.fhir_fakes import FakeResponse


def test_build_payload() -> None:
    assert build_payload("show all patients") == {"text": "show all patients"}
    assert build_payload("x", "https://fhir.test", True, "anthropic") == {
        "text": "x",
        "server_url": "https://fhir.test",
        "smart_mode": True,
        "provider": "anthropic",
    }


def test_format_pretty_smoke() -> None:
    result = {
        "type": "warning",
        "content": 'No patients found with name "Jane Doe".',
        "meta": {"server_url": "https://fhir.test", "status": "Connected", "route": "pattern"},
    }
    text = format_pretty(result)
    assert text.startswith("[warning]")
    assert "Jane Doe" in text
    assert "route: pattern" in text


def test_main_posts_query(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    seen = {}

    def fake_urlopen(request, timeout=None):
        seen["url"] = request.full_url
        seen["body"] = json.loads(request.data)
        return FakeResponse({"type": "success", "content": "Found 1 patients.", "meta": {}})

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    exit_code = query_client.main(["--url", "http://127.0.0.1:8000/", "--text", "show all patients", "--pretty"])

    assert exit_code == 0
    assert seen["url"] == "http://127.0.0.1:8000/v1/query"
    assert seen["body"] == {"text": "show all patients"}
    assert "Found 1 patients." in capsys.readouterr().out
