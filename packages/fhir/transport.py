from __future__ import annotations

import logging
import urllib.parse
from dataclasses import dataclass
from typing import Any, Callable, List, Literal, Mapping, Optional, Sequence

from pydantic import BaseModel

from packages.core.errors import AllStrategiesExhausted, FHIRRequestError, HttpError
from packages.core.schemas.session import SessionContext
from packages.fhir.fetcher import ParamValue, ResourceFetcher, build_url
from packages.fhir.samples import sample_response

logger = logging.getLogger(__name__)

StrategyKind = Literal["direct", "proxy", "alternate-server", "local-sample"]


def _codetabs(url: str) -> str:
    return f"https://api.codetabs.com/v1/proxy?quest={urllib.parse.quote(url, safe='')}"


def _corsproxy(url: str) -> str:
    return f"https://corsproxy.io/?{urllib.parse.quote(url, safe='')}"


def _allorigins(url: str) -> str:
    return f"https://api.allorigins.win/raw?url={urllib.parse.quote(url, safe='')}"


CORS_PROXIES: tuple[Callable[[str], str], ...] = (_codetabs, _corsproxy, _allorigins)


@dataclass(frozen=True)
class Strategy:
    """How to issue one attempt; building a URL never touches the network."""
    kind: StrategyKind
    server_url: Optional[str] = None
    proxy_index: Optional[int] = None

    @property
    def label(self) -> str:
        if self.proxy_index is None:
            return self.kind
        proxy = f"proxy[{self.proxy_index + 1}]"
        return proxy if self.kind == "proxy" else f"{self.kind}+{proxy}"

    def build_url(self, path: str, params: Optional[Mapping[str, ParamValue]]) -> str:
        if self.server_url is None:
            return f"local:{path}"
        target = build_url(self.server_url, path, params)
        if self.proxy_index is None:
            return target
        return CORS_PROXIES[self.proxy_index](target)


class TransportAttempt(BaseModel):
    kind: str
    url: str
    outcome: Literal["success", "http-error", "network-error"]
    status: Optional[int] = None
    error: Optional[str] = None


def build_strategies(
    server_url: str,
    alternate_servers: Sequence[str],
    *,
    use_proxies: bool,
    local_fallback: bool,
) -> List[Strategy]:
    current = server_url.rstrip("/")
    proxies = range(len(CORS_PROXIES)) if use_proxies else range(0)

    strategies = [Strategy("direct", current)]
    strategies.extend(Strategy("proxy", current, index) for index in proxies)
    for alternate in alternate_servers:
        alternate = alternate.rstrip("/")
        if alternate == current:
            continue
        strategies.append(Strategy("alternate-server", alternate))
        strategies.extend(Strategy("alternate-server", alternate, index) for index in proxies)
    if local_fallback:
        strategies.append(Strategy("local-sample"))
    return strategies


class ResilientTransport:
    def __init__(
        self,
        session: SessionContext,
        fetcher: Optional[ResourceFetcher] = None,
        *,
        alternate_servers: Sequence[str] = (),
        use_proxies: bool = False,
        local_fallback: bool = True,
    ) -> None:
        self.session = session
        self.fetcher = fetcher or ResourceFetcher()
        self.alternate_servers = list(alternate_servers)
        self.use_proxies = use_proxies
        self.local_fallback = local_fallback
        self.last_attempts: List[TransportAttempt] = []

    def strategies(self, failover: bool = True) -> List[Strategy]:
        return build_strategies(
            self.session.server_url,
            self.alternate_servers if failover else (),
            use_proxies=self.use_proxies,
            local_fallback=self.local_fallback and failover,
        )

    def request(
        self,
        path: str,
        params: Optional[Mapping[str, ParamValue]] = None,
        *,
        failover: bool = True,
    ) -> Any:
        attempts: List[TransportAttempt] = []
        self.last_attempts = attempts
        for strategy in self.strategies(failover):
            url = strategy.build_url(path, params)
            if strategy.kind == "local-sample":
                payload = sample_response(path)
                attempts.append(TransportAttempt(kind=strategy.label, url=url, outcome="success"))
                logger.warning("All remote strategies failed for %s; serving local sample data", path)
                self._record_success(strategy)
                return payload
            try:
                if strategy.proxy_index is None:
                    payload = self.fetcher.fetch(strategy.server_url, path, params)
                else:
                    payload = self.fetcher.fetch_url(url)
            except HttpError as exc:
                attempts.append(
                    TransportAttempt(
                        kind=strategy.label,
                        url=url,
                        outcome="http-error",
                        status=exc.status,
                        error=str(exc),
                    )
                )
                logger.warning("%s attempt failed: %s (%s)", strategy.label, url, exc)
                continue
            except FHIRRequestError as exc:
                attempts.append(
                    TransportAttempt(
                        kind=strategy.label, url=url, outcome="network-error", error=str(exc)
                    )
                )
                logger.warning("%s attempt failed: %s (%s)", strategy.label, url, exc)
                continue
            attempts.append(TransportAttempt(kind=strategy.label, url=url, outcome="success"))
            self._record_success(strategy)
            return payload
        raise AllStrategiesExhausted(attempts)

    def _record_success(self, strategy: Strategy) -> None:
        if strategy.kind == "local-sample":
            self.session.set_status("Offline: using local sample data", strategy.label)
            return
        if strategy.kind == "alternate-server" and strategy.server_url:
            if self.session.server_url != strategy.server_url:
                logger.info(
                    "Switching FHIR server from %s to %s", self.session.server_url, strategy.server_url
                )
            self.session.server_url = strategy.server_url
            self.session.set_status(f"Connected (fallback: {strategy.server_url})", strategy.label)
            return
        self.session.set_status("Connected", strategy.label)

    def check_connection(self) -> bool:
        try:
            self.request("metadata", failover=False)
        except AllStrategiesExhausted as exc:
            logger.warning("Connection check failed: %s", exc)
            self.session.set_status("Connection failed")
            return False
        return True


__all__ = [
    "CORS_PROXIES",
    "Strategy",
    "TransportAttempt",
    "build_strategies",
    "ResilientTransport",
]
