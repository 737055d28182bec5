import urllib.parse

import pytest

from packages.core.errors import AllStrategiesExhausted, HttpError, NetworkError
from packages.core.schemas.session import SessionContext
from packages.fhir.transport import ResilientTransport, Strategy, build_strategies
from tests.fhir_fakes import FakeFetcher, bundle, patient, unreachable

PRIMARY = "https://primary.test/fhir"
BACKUP = "https://backup.test/fhir"


def _session() -> SessionContext:
    return SessionContext(server_url=PRIMARY, default_server_url=PRIMARY)


def test_strategy_order_with_proxies() -> None:
    strategies = build_strategies(
        PRIMARY, [PRIMARY + "/", BACKUP], use_proxies=True, local_fallback=True
    )
    assert [strategy.label for strategy in strategies] == [
        "direct",
        "proxy[1]",
        "proxy[2]",
        "proxy[3]",
        "alternate-server",
        "alternate-server+proxy[1]",
        "alternate-server+proxy[2]",
        "alternate-server+proxy[3]",
        "local-sample",
    ]
    assert strategies[4].server_url == BACKUP


def test_strategy_order_without_proxies_or_local() -> None:
    strategies = build_strategies(PRIMARY, [BACKUP], use_proxies=False, local_fallback=False)
    assert [strategy.label for strategy in strategies] == ["direct", "alternate-server"]


def test_proxy_strategy_wraps_encoded_target_url() -> None:
    url = Strategy("proxy", PRIMARY, 0).build_url("Patient", {"_count": 10})
    target = urllib.parse.quote(f"{PRIMARY}/Patient?_count=10", safe="")
    assert url == f"https://api.codetabs.com/v1/proxy?quest={target}"
    assert Strategy("local-sample").build_url("Patient", None) == "local:Patient"


def test_direct_success_marks_connected() -> None:
    fetcher = FakeFetcher(lambda base, path, params: bundle(patient("p1", "Ada", "Lovelace")))
    session = _session()
    transport = ResilientTransport(session, fetcher, alternate_servers=[BACKUP])

    payload = transport.request("Patient", {"_count": 10})

    assert payload["total"] == 1
    assert session.status == "Connected"
    assert session.status_source == "direct"
    assert [attempt.outcome for attempt in transport.last_attempts] == ["success"]
    assert fetcher.calls == [(PRIMARY, "Patient", {"_count": 10})]


def test_alternate_server_success_switches_session() -> None:
    def handler(base, path, params):
        if base == PRIMARY:
            raise HttpError(503, "Service Unavailable")
        return bundle()

    session = _session()
    transport = ResilientTransport(session, FakeFetcher(handler), alternate_servers=[BACKUP])
    transport.request("Patient")

    assert session.server_url == BACKUP
    assert session.status == f"Connected (fallback: {BACKUP})"
    first, second = transport.last_attempts
    assert (first.kind, first.outcome, first.status) == ("direct", "http-error", 503)
    assert (second.kind, second.outcome) == ("alternate-server", "success")


def test_local_sample_used_when_every_server_fails() -> None:
    session = _session()
    transport = ResilientTransport(session, FakeFetcher(unreachable), alternate_servers=[BACKUP])

    payload = transport.request("Patient", {"_count": 10})

    assert payload["resourceType"] == "Bundle"
    assert any(entry["resource"]["id"] == "sample-patient-1" for entry in payload["entry"])
    assert session.status == "Offline: using local sample data"
    assert session.server_url == PRIMARY
    assert [attempt.kind for attempt in transport.last_attempts] == [
        "direct",
        "alternate-server",
        "local-sample",
    ]


def test_exhausted_without_local_fallback() -> None:
    transport = ResilientTransport(
        _session(), FakeFetcher(unreachable), alternate_servers=[BACKUP], local_fallback=False
    )
    with pytest.raises(AllStrategiesExhausted) as excinfo:
        transport.request("Patient")

    assert len(excinfo.value.attempts) == 2
    assert "connection refused" in str(excinfo.value)


def test_proxies_are_tried_through_fetch_url() -> None:
    fetcher = FakeFetcher(unreachable)
    transport = ResilientTransport(_session(), fetcher, use_proxies=True, local_fallback=False)
    with pytest.raises(AllStrategiesExhausted):
        transport.request("Patient")
    assert len(fetcher.url_calls) == 3
    assert fetcher.url_calls[1].startswith("https://corsproxy.io/?")


def test_check_connection_only_tests_selected_server() -> None:
    fetcher = FakeFetcher(unreachable)
    session = _session()
    transport = ResilientTransport(session, fetcher, alternate_servers=[BACKUP])

    assert transport.check_connection() is False
    assert session.status == "Connection failed"
    assert fetcher.calls == [(PRIMARY, "metadata", {})]


def test_check_connection_success() -> None:
    fetcher = FakeFetcher(lambda base, path, params: {"resourceType": "CapabilityStatement"})
    session = _session()
    session.select_server(BACKUP)
    assert session.status == "Connecting..."

    assert ResilientTransport(session, fetcher).check_connection() is True
    assert session.status == "Connected"
    assert fetcher.calls[0][0] == BACKUP


def test_network_error_attempt_has_no_status() -> None:
    def handler(base, path, params):
        raise NetworkError("timed out")

    transport = ResilientTransport(_session(), FakeFetcher(handler), local_fallback=False)
    with pytest.raises(AllStrategiesExhausted):
        transport.request("Patient")
    attempt = transport.last_attempts[0]
    assert attempt.outcome == "network-error"
    assert attempt.status is None
    assert attempt.error == "timed out"
