from __future__ import annotations

import logging
from typing import Callable, Optional

from packages.core.config import Settings
from packages.core.llm import LLMClient
from packages.core.schemas.query import FormattedResult
from packages.core.schemas.session import SessionContext
from packages.fhir.fetcher import ResourceFetcher
from packages.fhir.transport import ResilientTransport
from packages.query.classifier import classify
from packages.query.executor import QueryExecutor
from packages.quality.scorer import QualityScorer
from packages.reasoning.planner import CloudReasoner

logger = logging.getLogger(__name__)

EMPTY_QUERY_TEXT = 'Please type a question, for example "Show all patients".'
FALLBACK_NOTE = "⚠️ Smart Mode fell back to pattern matching"

ReasonerFactory = Callable[[SessionContext], CloudReasoner]


def llm_reasoner_factory(settings: Optional[Settings] = None) -> ReasonerFactory:
    def factory(session: SessionContext) -> CloudReasoner:
        base_url = None
        model = session.model
        if settings is not None:
            if session.provider == "anthropic":
                base_url = settings.anthropic_base_url
                model = model or settings.anthropic_model
            else:
                base_url = settings.openai_base_url
                model = model or settings.openai_model
        client = LLMClient(
            provider=session.provider,
            api_key=session.api_key,
            model=model,
            base_url=base_url,
        )
        return CloudReasoner(client)

    return factory


class FHIRAssistant:
    def __init__(
        self,
        session: SessionContext,
        transport: ResilientTransport,
        executor: Optional[QueryExecutor] = None,
        reasoner_factory: Optional[ReasonerFactory] = None,
    ) -> None:
        self.session = session
        self.transport = transport
        self.executor = executor or QueryExecutor(transport)
        self.reasoner_factory = reasoner_factory or llm_reasoner_factory()
        self.last_route: Optional[str] = None
        self.last_intent: Optional[str] = None

    def process_query(self, text: str) -> FormattedResult:
        self.last_route = None
        self.last_intent = None
        if not text or not text.strip():
            return FormattedResult(type="info", content=EMPTY_QUERY_TEXT)
        try:
            if self.session.smart_mode_ready():
                return self._smart_query(text)
            return self._pattern_query(text)
        except Exception as exc:
            logger.exception("Query failed unexpectedly: %s", text)
            return FormattedResult(type="error", content=f"Sorry, something went wrong: {exc}")

    def _pattern_query(self, text: str) -> FormattedResult:
        intent = classify(text)
        self.last_route = self.last_route or "pattern"
        self.last_intent = intent.kind
        logger.info("Classified %r as %s", text, intent.kind)
        return self.executor.execute(intent)

    def _smart_query(self, text: str) -> FormattedResult:
        plan = self.reasoner_factory(self.session).reason(text)
        if not plan.fallback:
            self.last_route = "smart"
            return self.executor.execute_plan(plan)

        logger.info("Smart mode fell back to pattern matching: %s", plan.error)
        self.last_route = "smart-fallback"
        result = self._pattern_query(text)
        note = FALLBACK_NOTE
        if plan.reasoning:
            note += f" (model said: {plan.reasoning})"
        return FormattedResult(type=result.type, content=f"{note}\n\n{result.content}")


def build_assistant(
    settings: Settings,
    session: Optional[SessionContext] = None,
    fetcher: Optional[ResourceFetcher] = None,
) -> FHIRAssistant:
    session = session or SessionContext.from_settings(settings)
    fetcher = fetcher or ResourceFetcher(timeout=settings.timeout)
    transport = ResilientTransport(
        session,
        fetcher,
        alternate_servers=settings.alternate_servers,
        use_proxies=settings.use_cors_proxies,
        local_fallback=settings.local_fallback,
    )
    executor = QueryExecutor(transport, QualityScorer(fetcher))
    return FHIRAssistant(session, transport, executor, llm_reasoner_factory(settings))


__all__ = ["FHIRAssistant", "build_assistant", "llm_reasoner_factory", "FALLBACK_NOTE"]
