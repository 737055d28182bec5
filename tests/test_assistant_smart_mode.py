from packages.assistant import FALLBACK_NOTE, FHIRAssistant, llm_reasoner_factory
from packages.core.config import Settings
from packages.core.schemas.query import ActionPlan, FhirOperation
from packages.core.schemas.session import SessionContext
from packages.fhir.transport import ResilientTransport
from tests.fhir_fakes import FakeFetcher, bundle, patient

SERVER = "https://fhir.test/baseR4"


class _FixedReasoner:
    def __init__(self, plan: ActionPlan) -> None:
        self.plan = plan
        self.texts: list[str] = []

    def reason(self, text: str) -> ActionPlan:
        self.texts.append(text)
        return self.plan


def _assistant(plan: ActionPlan, smart_mode: bool = True, api_key: str = "k"):
    fetcher = FakeFetcher(lambda base, path, params: bundle(patient("p1", "Ada", "Lovelace")))
    session = SessionContext(server_url=SERVER, smart_mode=smart_mode, api_key=api_key)
    reasoner = _FixedReasoner(plan)
    transport = ResilientTransport(session, fetcher, local_fallback=False)
    return FHIRAssistant(session, transport, reasoner_factory=lambda _session: reasoner), reasoner, fetcher


def test_smart_plan_is_executed() -> None:
    plan = ActionPlan(
        reasoning="Female patients",
        fhir_operations=[FhirOperation(resource="Patient", parameters={"gender": "female"})],
    )
    assistant, reasoner, fetcher = _assistant(plan)

    result = assistant.process_query("women in the registry")

    assert result.type == "success"
    assert "🧠 **Smart Mode**: Female patients" in result.content
    assert reasoner.texts == ["women in the registry"]
    assert fetcher.calls[0][2] == {"_count": 20, "gender": "female"}
    assert assistant.last_route == "smart"


def test_fallback_plan_reruns_classifier_with_note() -> None:
    plan = ActionPlan(reasoning="Probably a patient list", fallback=True, error="unparseable plan")
    assistant, _, fetcher = _assistant(plan)

    result = assistant.process_query("show all patients")

    assert result.type == "success"
    assert result.content.startswith(FALLBACK_NOTE)
    assert "Probably a patient list" in result.content
    assert "Ada Lovelace" in result.content
    assert fetcher.calls[0][2] == {"_count": 10}
    assert assistant.last_route == "smart-fallback"
    assert assistant.last_intent == "list_patients"


def test_smart_mode_without_key_uses_classifier() -> None:
    assistant, reasoner, _ = _assistant(ActionPlan(), api_key=None)
    result = assistant.process_query("show all patients")

    assert result.type == "success"
    assert reasoner.texts == []
    assert assistant.last_route == "pattern"


def test_empty_query_prompts_for_input() -> None:
    assistant, _, fetcher = _assistant(ActionPlan())
    result = assistant.process_query("  ")
    assert result.type == "info"
    assert fetcher.calls == []


def test_reasoner_factory_uses_provider_settings() -> None:
    settings = Settings(anthropic_base_url="https://proxy.test/v1", anthropic_model="claude-test")
    session = SessionContext(provider="anthropic", api_key="secret")

    reasoner = llm_reasoner_factory(settings)(session)

    assert reasoner.client.provider == "anthropic"
    assert reasoner.client.base_url == "https://proxy.test/v1"
    assert reasoner.client.model == "claude-test"
    assert reasoner.client.api_key == "secret"
