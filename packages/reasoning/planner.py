from __future__ import annotations

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from packages.core.errors import ProviderError
from packages.core.llm import LLMClient
from packages.core.schemas.query import ActionPlan, FhirOperation

logger = logging.getLogger(__name__)

SUPPORTED_RESOURCES = (
    "Patient",
    "Condition",
    "Observation",
    "MedicationRequest",
    "CarePlan",
    "Encounter",
)

SYSTEM_PROMPT = f"""You are a FHIR query planner. Turn the user's healthcare question into FHIR REST operations.

Available FHIR resources: {", ".join(SUPPORTED_RESOURCES)}.
Operations: "search" (query parameters such as name, family, given, gender, birthdate, patient, code, _count, _sort) and "read" (parameters must contain "id").

Respond with a single JSON object and nothing else:
{{
  "reasoning": "one sentence on how you interpreted the question",
  "fhir_operations": [
    {{"resource": "Patient", "operation": "search", "parameters": {{"gender": "female"}}, "purpose": "find female patients"}}
  ],
  "response_format": "how the answer should be presented"
}}

Examples:
- "diabetic patients" -> Condition search with {{"code": "diabetes"}}
- "patients born in 1967" -> Patient search with {{"birthdate": "1967"}}
- "details for patient 123" -> Patient read with {{"id": "123"}}"""

_LINE_COMMENT_RE = re.compile(r"(?<!:)//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_REASONING_RE = re.compile(r'"reasoning"\s*:\s*"((?:[^"\\]|\\.)*)"')
_RESOURCE_RE = re.compile(r'"resource"\s*:\s*"([A-Za-z]+)"')


def _braced(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def _strip_comments(text: str) -> str:
    cleaned = text.replace("```json", "").replace("```", "")
    cleaned = _BLOCK_COMMENT_RE.sub("", cleaned)
    cleaned = _LINE_COMMENT_RE.sub("", cleaned)
    return _TRAILING_COMMA_RE.sub(r"\1", cleaned).strip()


def load_plan_json(text: str) -> Optional[dict]:
    """Direct parse, then the outermost braces, then the braces with comments and fences removed."""
    if not text or not isinstance(text, str):
        return None
    candidates = [text.strip()]
    braced = _braced(text)
    if braced:
        candidates.append(braced)
        candidates.append(_strip_comments(braced))
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _keyword_plan(text: str, error: str) -> ActionPlan:
    reasoning_match = _REASONING_RE.search(text or "")
    resource_match = _RESOURCE_RE.search(text or "")
    resource = resource_match.group(1) if resource_match else "Patient"
    if resource not in SUPPORTED_RESOURCES:
        resource = "Patient"
    return ActionPlan(
        reasoning=reasoning_match.group(1) if reasoning_match else "",
        fhir_operations=[FhirOperation(resource=resource, operation="search", purpose="default search")],
        response_format="list",
        fallback=True,
        error=error,
    )


def parse_plan(text: str) -> ActionPlan:
    data = load_plan_json(text)
    if data is None:
        logger.warning("Could not parse a plan from the model reply: %s", (text or "")[:200])
        return _keyword_plan(text, "unparseable plan")

    operations: list[FhirOperation] = []
    for raw in data.get("fhir_operations") or []:
        if not isinstance(raw, dict):
            continue
        try:
            operation = FhirOperation.model_validate(raw)
        except ValidationError as exc:
            logger.info("Dropping malformed operation %r: %s", raw, exc)
            continue
        if operation.resource in SUPPORTED_RESOURCES:
            operations.append(operation)

    reasoning = data.get("reasoning")
    response_format = data.get("response_format")
    if not operations:
        plan = _keyword_plan(text, "plan contained no usable FHIR operations")
        if isinstance(reasoning, str):
            plan.reasoning = reasoning
        return plan
    return ActionPlan(
        reasoning=reasoning if isinstance(reasoning, str) else "",
        fhir_operations=operations,
        response_format=response_format if isinstance(response_format, str) else "",
    )


class CloudReasoner:
    """Asks a cloud model for an ActionPlan; never raises to the caller."""

    def __init__(self, client: LLMClient) -> None:
        self.client = client

    def reason(self, text: str) -> ActionPlan:
        try:
            reply = self.client.complete(SYSTEM_PROMPT, text)
        except ProviderError as exc:
            logger.warning("Cloud reasoning via %s failed: %s", self.client.provider, exc)
            return ActionPlan(fallback=True, error=str(exc))
        plan = parse_plan(reply)
        logger.info(
            "Cloud plan: %d operation(s), fallback=%s",
            len(plan.fhir_operations),
            plan.fallback,
        )
        return plan


__all__ = ["SYSTEM_PROMPT", "SUPPORTED_RESOURCES", "CloudReasoner", "load_plan_json", "parse_plan"]
